"""Document processor: bytes in, searchable document out.

extract -> sanitize/normalize -> chunk -> summarize -> embed, then persist the
document, fully replace its chunk set and upsert both into the vector
backend. Only ``UnsupportedFormat`` fails a document outright with its own
code; anything else unexpected is recorded as ``processing_error``.
"""

from __future__ import annotations

import hashlib
import logging
import uuid

from draftkb.adapters.vector.base import VectorStore
from draftkb.core.errors import UnsupportedFormat
from draftkb.core.models import (
    Chunk,
    Document,
    DocumentEmbeddings,
    IngestResult,
    ProcessedDocument,
    utcnow,
)
from draftkb.services.chunk_service import chunk_text
from draftkb.services.embed_service import EmbeddingService, combine_texts
from draftkb.services.extract_service import extract, resolve_file_type
from draftkb.services.store_service import DocumentStore
from draftkb.services.summary_service import business_context, extract_topics, summarize
from draftkb.services.text_service import count_words, normalize, sanitize
from draftkb.services.title_service import best_title

logger = logging.getLogger(__name__)

POINT_NAMESPACE = uuid.UUID("6f1d3c1e-2b7a-4f4e-9a57-3f1f0c2d9b11")


def document_point_id(doc_id: str) -> str:
    """Vector id for a document; Qdrant only accepts UUIDs and integers."""
    return str(uuid.uuid5(POINT_NAMESPACE, doc_id))


def chunk_point_id(doc_id: str, index: int) -> str:
    """Stable vector id for a chunk, so re-ingestion overwrites instead of piling up."""
    return str(uuid.uuid5(POINT_NAMESPACE, f"{doc_id}:{index}"))


def clean_tags(tags: list[str] | None) -> list[str]:
    return list(dict.fromkeys(t.strip() for t in (tags or []) if t and t.strip()))


class DocumentProcessor:
    def __init__(
        self,
        store: DocumentStore,
        embedder: EmbeddingService,
        doc_vectors: VectorStore,
        chunk_vectors: VectorStore,
        chunk_size: int = 1000,
        chunk_overlap: int = 200,
        summary_max_chars: int = 300,
        summary_max_sentences: int = 3,
        topic_count: int = 5,
    ):
        self.store = store
        self.embedder = embedder
        self.doc_vectors = doc_vectors
        self.chunk_vectors = chunk_vectors
        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap
        self.summary_max_chars = summary_max_chars
        self.summary_max_sentences = summary_max_sentences
        self.topic_count = topic_count

    def generate_embeddings(self, title: str, content: str, description: str | None = None) -> DocumentEmbeddings:
        return DocumentEmbeddings(
            title_embedding=self.embedder.embed(title),
            content_embedding=self.embedder.embed(content),
            combined_embedding=self.embedder.embed(combine_texts(title, content, description)),
        )

    def process_document(
        self,
        data: bytes,
        declared_type: str | None,
        filename: str | None = None,
        title: str | None = None,
        description: str | None = None,
    ) -> ProcessedDocument:
        """Run the pure part of the pipeline; nothing is persisted.

        Raises ``UnsupportedFormat`` before any work is done for unknown types.
        """
        extracted = extract(data, declared_type, filename)
        text = normalize(extracted.text)
        doc_title = best_title(title, filename, extracted.text)

        chunks = chunk_text(
            text,
            chunk_size=self.chunk_size,
            overlap=self.chunk_overlap,
            page_count=extracted.page_count,
        )
        vectors = self.embedder.embed_batch([c.text for c in chunks])
        for chunk, vec in zip(chunks, vectors):
            chunk.embedding = vec

        return ProcessedDocument(
            title=doc_title,
            extracted_text=text,
            word_count=count_words(text),
            page_count=extracted.page_count,
            summary=sanitize(summarize(text, self.summary_max_chars, self.summary_max_sentences)),
            key_topics=extract_topics(text, self.topic_count),
            business_context=business_context(text),
            chunks=chunks,
            embeddings=self.generate_embeddings(doc_title, text, description),
            degraded=extracted.degraded,
        )

    def ingest_document(
        self,
        user_id: str,
        data: bytes,
        declared_type: str | None,
        filename: str | None = None,
        title: str | None = None,
        description: str | None = None,
        category: str | None = None,
        tags: list[str] | None = None,
        doc_id: str | None = None,
    ) -> IngestResult:
        """Ingest one upload end to end. Never raises for a bad document.

        Passing the ``doc_id`` of an existing document re-ingests it: its
        chunks and vector points are replaced wholesale. Only the owner may
        re-ingest; any other ``doc_id`` fails with ``document_not_found``
        and leaves the store untouched.
        """
        previous = self.store.get_document(doc_id) if doc_id else None
        if doc_id and (previous is None or previous.user_id != user_id):
            logger.warning("Re-ingestion refused: document %s not found for user %s", doc_id, user_id)
            return IngestResult(
                document_id=doc_id,
                status="failed",
                failure_code="document_not_found",
                reason=f"document {doc_id} not found",
            )

        doc = Document(
            id=doc_id or str(uuid.uuid4()),
            user_id=user_id,
            title=best_title(title, filename),
            description=description or None,
            category=category or None,
            tags=clean_tags(tags),
            status="uploading",
            filename=filename,
            file_type=declared_type,
            file_size=len(data),
            file_hash=hashlib.sha256(data).hexdigest(),
        )
        if previous:
            doc.created_at = previous.created_at
            doc.usage_count = previous.usage_count
        self.store.save_document(doc)
        self.store.update_status(doc.id, "processing")
        logger.info("Processing document %s (%s, %d bytes)", doc.id, filename or "upload", len(data))

        try:
            doc.file_type = resolve_file_type(declared_type, filename)
            processed = self.process_document(data, declared_type, filename, title, description)
        except UnsupportedFormat as e:
            return self._fail(doc, e.code, e.message)
        except Exception as e:
            logger.exception("Processing failed for document %s", doc.id)
            return self._fail(doc, "processing_error", str(e))

        doc.title = processed.title
        doc.status = "processed"
        doc.extracted_text = processed.extracted_text
        doc.word_count = processed.word_count
        doc.page_count = processed.page_count
        doc.summary = processed.summary
        doc.key_topics = processed.key_topics
        doc.business_context = processed.business_context
        doc.title_embedding = processed.embeddings.title_embedding
        doc.content_embedding = processed.embeddings.content_embedding
        doc.combined_embedding = processed.embeddings.combined_embedding
        doc.processed_at = utcnow()

        for chunk in processed.chunks:
            chunk.document_id = doc.id
            chunk.user_id = user_id
        try:
            self.store.replace_chunks(doc.id, user_id, processed.chunks)
            self.store.save_document(doc)
        except Exception as e:
            logger.exception("Saving document %s failed", doc.id)
            return self._fail(doc, "processing_error", str(e))
        self._index_vectors(doc, processed.chunks)

        logger.info(
            "Processed document %s: %d words, %d chunks%s",
            doc.id, doc.word_count, len(processed.chunks), " (degraded)" if processed.degraded else "",
        )
        return IngestResult(
            document_id=doc.id,
            status="processed",
            word_count=doc.word_count,
            page_count=doc.page_count,
            summary=doc.summary,
            key_topics=doc.key_topics,
            chunks=len(processed.chunks),
            degraded=processed.degraded,
        )

    def _fail(self, doc: Document, code: str, reason: str) -> IngestResult:
        logger.warning("Document %s failed (%s): %s", doc.id, code, reason)
        self.store.update_status(doc.id, "failed", error=reason, failure_code=code)
        return IngestResult(document_id=doc.id, status="failed", failure_code=code, reason=reason)

    def _index_vectors(self, doc: Document, chunks: list[Chunk]) -> None:
        """Replace the document's points in both collections.

        The store already holds every vector, so a vector backend outage only
        costs vector search until the next re-ingestion; lexical fallback
        still sees the document.
        """
        base = {"user_id": doc.user_id, "document_id": doc.id, "category": doc.category, "title": doc.title}
        try:
            self.doc_vectors.ensure_collection(self.embedder.dim)
            self.doc_vectors.delete_by_doc_id(doc.id)
            self.doc_vectors.upsert([document_point_id(doc.id)], [doc.combined_embedding], [base])

            self.chunk_vectors.ensure_collection(self.embedder.dim)
            self.chunk_vectors.delete_by_doc_id(doc.id)
            self.chunk_vectors.upsert(
                [chunk_point_id(doc.id, c.index) for c in chunks],
                [c.embedding for c in chunks],
                [{**base, "chunk_index": c.index} for c in chunks],
            )
        except Exception as e:
            logger.warning("Vector upsert failed for document %s: %s", doc.id, e)
