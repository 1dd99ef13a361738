import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from draftkb.core.config import Settings, settings as default_settings
from draftkb.core.logging import setup_logging
from draftkb.services.embed_service import EmbeddingService
from draftkb.services.pipeline_service import DocumentProcessor
from draftkb.services.retrieve_service import RetrievalService
from draftkb.services.store_service import DocumentStore
from draftkb.services.vector_factory import get_vector_store

from draftkb.api.routes_citations import router as citations_router
from draftkb.api.routes_documents import router as docs_router
from draftkb.api.routes_ingest import router as ingest_router
from draftkb.api.routes_search import router as search_router

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or default_settings
    setup_logging(settings)

    store = DocumentStore(settings.DB_PATH)
    store.init_db()
    embedder = EmbeddingService.from_settings(settings)
    doc_vectors = get_vector_store(settings, "documents")
    chunk_vectors = get_vector_store(settings, "chunks")
    # Ensure collections exist early (may auto-recreate on dim mismatch)
    for vectors in (doc_vectors, chunk_vectors):
        try:
            vectors.ensure_collection(embedder.dim)
        except Exception as e:
            # Don't block startup; retrieval falls back to lexical and /health shows it.
            logger.warning("Vector collection %s not ready: %s", getattr(vectors, "collection", "?"), e)

    processor = DocumentProcessor(
        store, embedder, doc_vectors, chunk_vectors,
        chunk_size=settings.CHUNK_SIZE,
        chunk_overlap=settings.CHUNK_OVERLAP,
        summary_max_chars=settings.SUMMARY_MAX_CHARS,
        summary_max_sentences=settings.SUMMARY_MAX_SENTENCES,
        topic_count=settings.TOPIC_COUNT,
    )
    retriever = RetrievalService(
        store, embedder, doc_vectors, chunk_vectors,
        doc_limit=settings.DOC_LIMIT,
        chunk_limit=settings.CHUNK_LIMIT,
        similarity_threshold=settings.SIMILARITY_THRESHOLD,
        vector_weight=settings.VECTOR_WEIGHT,
        text_weight=settings.TEXT_WEIGHT,
        timeout=settings.VECTOR_TIMEOUT,
        snippet_chars=settings.SNIPPET_CHARS,
        preview_chars=settings.CITATION_PREVIEW_CHARS,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        retriever.close()
        embedder.close()
        doc_vectors.close()
        chunk_vectors.close()

    app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)
    app.state.settings = settings
    app.state.store = store
    app.state.embedder = embedder
    app.state.doc_vectors = doc_vectors
    app.state.chunk_vectors = chunk_vectors
    app.state.processor = processor
    app.state.retriever = retriever

    origins = [o.strip() for o in (settings.CORS_ORIGINS or "").split(",") if o.strip()]
    if origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.include_router(ingest_router)
    app.include_router(docs_router)
    app.include_router(search_router)
    app.include_router(citations_router)

    @app.get("/health")
    def health(request: Request):
        state = request.app.state
        checks = {
            "store": True,
            "documents_vectors": state.doc_vectors.health(),
            "chunks_vectors": state.chunk_vectors.health(),
        }
        try:
            state.store.list_documents("__health__")
        except Exception:
            checks["store"] = False
        return {
            "ok": all(checks.values()),
            "app": settings.APP_NAME,
            "env": settings.ENV,
            "embedding_provider": state.embedder.provider.name,
            "deps": checks,
        }

    return app
