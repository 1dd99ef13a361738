"""Knowledge retrieval: vector, hybrid and lexical search over one user's documents.

The vector path can fail (backend down, timeout, bad response); every such
failure becomes ``RetrievalBackendUnavailable`` and the query is answered by
the lexical path instead. ``retrieve`` itself never raises.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout

from draftkb.adapters.bm25.bm25 import BM25Index
from draftkb.adapters.vector.base import VectorStore
from draftkb.core.errors import RetrievalBackendUnavailable
from draftkb.core.models import (
    Chunk,
    ChunkMatch,
    Document,
    DocumentMatch,
    KnowledgeContext,
    RetrievalResult,
    SearchMode,
)
from draftkb.services.citation_service import assemble
from draftkb.services.embed_service import EmbeddingService
from draftkb.services.store_service import DocumentStore

logger = logging.getLogger(__name__)

CATEGORY_SUGGESTIONS = {
    "Company Policies": 'Reference company policy from "{title}"',
    "Product Information": 'Include product details from "{title}"',
    "Customer Service": 'Use customer service guidelines from "{title}"',
}
GENERIC_SUGGESTIONS = [
    "Consider referencing relevant company policies",
    "Include specific product or service details",
    "Maintain professional tone consistent with company standards",
]
MAX_SUGGESTIONS = 5


def clamp(score: float) -> float:
    return max(0.0, min(1.0, float(score)))


def build_suggestions(documents: list[DocumentMatch]) -> list[str]:
    out = [
        CATEGORY_SUGGESTIONS[d.category].format(title=d.title)
        for d in documents
        if d.category in CATEGORY_SUGGESTIONS
    ]
    return (out or list(GENERIC_SUGGESTIONS))[:MAX_SUGGESTIONS]


def _chunk_key(doc_id: str, index: int) -> str:
    return f"{doc_id}:{index}"


def _doc_search_text(doc: Document) -> str:
    return " ".join(p for p in (doc.title, doc.description, doc.category, " ".join(doc.tags), doc.extracted_text) if p)


def _normalized(hits: list[dict]) -> dict[str, float]:
    """BM25 scores divided by the best one, so they sit in [0, 1]."""
    best = max((h["bm25_score"] for h in hits), default=0.0)
    if best <= 0:
        return {h["id"]: 0.0 for h in hits}
    return {h["id"]: clamp(h["bm25_score"] / best) for h in hits}


def _fuse(vector: list, lexical: list, key, vw: float, tw: float, limit: int) -> list:
    by_key = {}
    scores: dict[str, float] = {}
    for item in vector:
        k = key(item)
        by_key[k] = item
        scores[k] = vw * item.relevance_score
    for item in lexical:
        k = key(item)
        by_key.setdefault(k, item)
        scores[k] = scores.get(k, 0.0) + tw * item.relevance_score
    ranked = sorted(scores, key=lambda k: scores[k], reverse=True)[:limit]
    return [by_key[k].model_copy(update={"relevance_score": clamp(scores[k])}) for k in ranked]


class RetrievalService:
    def __init__(
        self,
        store: DocumentStore,
        embedder: EmbeddingService,
        doc_vectors: VectorStore,
        chunk_vectors: VectorStore,
        doc_limit: int = 5,
        chunk_limit: int = 8,
        similarity_threshold: float = 0.0,
        vector_weight: float = 0.7,
        text_weight: float = 0.3,
        timeout: float = 10.0,
        snippet_chars: int = 200,
        preview_chars: int = 150,
    ):
        self.store = store
        self.embedder = embedder
        self.doc_vectors = doc_vectors
        self.chunk_vectors = chunk_vectors
        self.doc_limit = doc_limit
        self.chunk_limit = chunk_limit
        self.similarity_threshold = similarity_threshold
        self.vector_weight = vector_weight
        self.text_weight = text_weight
        self.timeout = timeout
        self.snippet_chars = snippet_chars
        self.preview_chars = preview_chars
        # backend calls run here so a hung backend can be abandoned after `timeout`
        self._executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="vector-search")

    def close(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)

    # --- public -----------------------------------------------------------

    def retrieve(
        self,
        user_id: str,
        query: str,
        limit: int | None = None,
        mode: SearchMode = "hybrid",
        category: str | None = None,
    ) -> KnowledgeContext:
        query = (query or "").strip()
        limit = limit or self.doc_limit
        if not query:
            return KnowledgeContext(query=query, suggestions=build_suggestions([]))

        try:
            if mode == "lexical":
                result, served = self.lexical_search(user_id, query, limit, category), "lexical"
            else:
                result, served = self.vector_search(user_id, query, limit, category), "vector"
                if mode == "hybrid":
                    result, served = self._hybrid(result, user_id, query, limit, category), "hybrid"
        except RetrievalBackendUnavailable as e:
            logger.warning("Vector search unavailable for user %s, using lexical fallback: %s", user_id, e.message)
            try:
                result = self.lexical_search(user_id, query, limit, category)
            except Exception:
                logger.exception("Lexical fallback failed for user %s", user_id)
                return self._empty(query, f"{e.message}; lexical fallback failed")
            result.degraded = True
            result.reason = e.message
            served = "lexical_fallback"
        except Exception as e:
            logger.exception("Retrieval failed for user %s", user_id)
            return self._empty(query, str(e))

        documents = result.documents or []
        chunks = result.chunks or []
        ctx = KnowledgeContext(
            query=query,
            search_type=served,
            documents=documents,
            chunks=chunks,
            suggestions=build_suggestions(documents),
            degraded=result.degraded,
            fallback_reason=result.reason,
        )
        ctx.citations = assemble(ctx, self.preview_chars)
        logger.debug(
            "Retrieved %d documents and %d chunks for %r via %s",
            len(documents), len(chunks), query[:50], served,
        )
        return ctx

    # --- vector -----------------------------------------------------------

    def _search(self, vectors: VectorStore, vec: list[float], top_k: int, filter: dict) -> list[dict]:
        future = self._executor.submit(vectors.search, vec, top_k, filter)
        try:
            return future.result(timeout=self.timeout)
        except FutureTimeout:
            future.cancel()
            raise RetrievalBackendUnavailable(f"vector search timed out after {self.timeout}s")
        except Exception as e:
            raise RetrievalBackendUnavailable(f"vector search failed: {e}") from e

    def vector_search(self, user_id: str, query: str, limit: int, category: str | None = None) -> RetrievalResult:
        """Cosine search over document and chunk vectors.

        Raises ``RetrievalBackendUnavailable`` when the backend can't answer.
        """
        qvec = self.embedder.embed(query)
        docs = {d.id: d for d in self.store.list_documents(user_id, status="processed", category=category)}
        filter = {"user_id": user_id, "category": category}

        documents = []
        for hit in self._search(self.doc_vectors, qvec, limit, filter):
            doc = docs.get((hit["payload"] or {}).get("document_id") or hit["id"])
            score = clamp(hit["score"])
            if doc is None or score < self.similarity_threshold:
                continue
            documents.append(self._document_match(doc, score))

        chunk_cache: dict[str, dict[int, Chunk]] = {}
        chunks = []
        for hit in self._search(self.chunk_vectors, qvec, self.chunk_limit, filter):
            payload = hit["payload"] or {}
            doc = docs.get(payload.get("document_id"))
            score = clamp(hit["score"])
            if doc is None or score < self.similarity_threshold * 0.8:
                continue
            if doc.id not in chunk_cache:
                chunk_cache[doc.id] = {c.index: c for c in self.store.get_chunks(doc.id)}
            chunk = chunk_cache[doc.id].get(payload.get("chunk_index"))
            if chunk is not None:
                chunks.append(self._chunk_match(chunk, doc, score))

        documents.sort(key=lambda m: m.relevance_score, reverse=True)
        chunks.sort(key=lambda m: m.relevance_score, reverse=True)
        return RetrievalResult(documents=documents, chunks=chunks)

    def _hybrid(
        self,
        vector: RetrievalResult,
        user_id: str,
        query: str,
        limit: int,
        category: str | None,
    ) -> RetrievalResult:
        try:
            lexical = self.lexical_search(user_id, query, limit, category)
        except Exception as e:
            logger.warning("Lexical half of hybrid search failed: %s", e)
            return RetrievalResult(documents=vector.documents, chunks=vector.chunks, degraded=True, reason=str(e))
        return RetrievalResult(
            documents=_fuse(
                vector.documents or [], lexical.documents or [], lambda m: m.id,
                self.vector_weight, self.text_weight, limit,
            ),
            chunks=_fuse(
                vector.chunks or [], lexical.chunks or [], lambda m: _chunk_key(m.document_id, m.chunk_index),
                self.vector_weight, self.text_weight, self.chunk_limit,
            ),
            degraded=lexical.degraded,
            reason=lexical.reason,
        )

    # --- lexical ----------------------------------------------------------

    def lexical_search(self, user_id: str, query: str, limit: int, category: str | None = None) -> RetrievalResult:
        """BM25 over the user's processed documents and their chunks.

        A failed chunk search leaves ``chunks`` as ``None`` and marks the
        result degraded; the document half still stands.
        """
        docs = {d.id: d for d in self.store.list_documents(user_id, status="processed", category=category)}
        doc_hits = BM25Index().build([(d.id, _doc_search_text(d)) for d in docs.values()]).search(query, limit)
        doc_scores = _normalized(doc_hits)
        documents = [self._document_match(docs[h["id"]], doc_scores[h["id"]]) for h in doc_hits]

        try:
            pairs = {_chunk_key(c.document_id, c.index): (c, d) for c, d in self.store.list_user_chunks(user_id, category)}
            chunk_hits = BM25Index().build([(k, c.text) for k, (c, _) in pairs.items()]).search(query, self.chunk_limit)
            chunk_scores = _normalized(chunk_hits)
            chunks = [self._chunk_match(*pairs[h["id"]], chunk_scores[h["id"]]) for h in chunk_hits]
        except Exception as e:
            logger.warning("Chunk search failed for user %s: %s", user_id, e)
            return RetrievalResult(documents=documents, chunks=None, degraded=True, reason=f"chunk search failed: {e}")
        return RetrievalResult(documents=documents, chunks=chunks)

    # --- shaping ----------------------------------------------------------

    def _document_match(self, doc: Document, score: float) -> DocumentMatch:
        return DocumentMatch(
            id=doc.id,
            title=doc.title,
            description=doc.description,
            category=doc.category,
            snippet=doc.summary or doc.extracted_text[: self.snippet_chars],
            relevance_score=score,
        )

    @staticmethod
    def _chunk_match(chunk: Chunk, doc: Document, score: float) -> ChunkMatch:
        return ChunkMatch(
            document_id=doc.id,
            document_title=doc.title,
            chunk_index=chunk.index,
            text=chunk.text,
            section_title=chunk.section_title,
            chunk_type=chunk.chunk_type,
            relevance_score=score,
        )

    @staticmethod
    def _empty(query: str, reason: str) -> KnowledgeContext:
        return KnowledgeContext(
            query=query,
            search_type="none",
            suggestions=build_suggestions([]),
            degraded=True,
            fallback_reason=reason,
        )
