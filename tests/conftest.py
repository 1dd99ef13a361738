"""Pytest configuration and fixtures.

Everything runs offline: hash-seeded embeddings, in-memory vector
collections and a throwaway SQLite file per test.
"""

import pytest
from fastapi.testclient import TestClient

from draftkb.adapters.embedding.offline import OfflineEmbedding
from draftkb.adapters.vector.memory import MemoryVectorStore
from draftkb.core.config import Settings
from draftkb.services.embed_service import EmbeddingService
from draftkb.services.pipeline_service import DocumentProcessor
from draftkb.services.retrieve_service import RetrievalService
from draftkb.services.store_service import DocumentStore

TEST_DIM = 32
USER = "user-1"


# -------------------------------------------------------------------------
# Service fixtures
# -------------------------------------------------------------------------


@pytest.fixture
def kb_settings(tmp_path) -> Settings:
    return Settings(
        DB_PATH=str(tmp_path / "kb.sqlite3"),
        DATA_DIR=str(tmp_path),
        VECTOR_BACKEND="memory",
        EMBED_PROVIDER="offline",
        EMBED_DIM=TEST_DIM,
        EMBED_BATCH_DELAY=0.0,
        VECTOR_TIMEOUT=2.0,
        CORS_ORIGINS="",
    )


@pytest.fixture
def store(tmp_path) -> DocumentStore:
    s = DocumentStore(str(tmp_path / "kb.sqlite3"))
    s.init_db()
    return s


@pytest.fixture
def embedder() -> EmbeddingService:
    return EmbeddingService(OfflineEmbedding(TEST_DIM), batch_delay=0.0)


@pytest.fixture
def doc_vectors() -> MemoryVectorStore:
    return MemoryVectorStore("documents")


@pytest.fixture
def chunk_vectors() -> MemoryVectorStore:
    return MemoryVectorStore("chunks")


@pytest.fixture
def processor(store, embedder, doc_vectors, chunk_vectors) -> DocumentProcessor:
    return DocumentProcessor(store, embedder, doc_vectors, chunk_vectors, chunk_size=1000, chunk_overlap=200)


@pytest.fixture
def retriever(store, embedder, doc_vectors, chunk_vectors):
    r = RetrievalService(store, embedder, doc_vectors, chunk_vectors, timeout=2.0)
    yield r
    r.close()


@pytest.fixture
def ingest(processor):
    """Ingest a plain-text document for USER and return its IngestResult."""

    def _ingest(text: str, title: str, category: str | None = None, **kwargs):
        return processor.ingest_document(
            user_id=kwargs.pop("user_id", USER),
            data=text.encode("utf-8"),
            declared_type="text/plain",
            filename=f"{title.lower().replace(' ', '_')}.txt",
            title=title,
            category=category,
            **kwargs,
        )

    return _ingest


# -------------------------------------------------------------------------
# HTTP fixtures
# -------------------------------------------------------------------------


@pytest.fixture
def client(kb_settings):
    from draftkb.main import create_app

    with TestClient(create_app(kb_settings)) as c:
        yield c
