from draftkb.adapters.vector.base import VectorStore
from draftkb.adapters.vector.memory import MemoryVectorStore
from draftkb.adapters.vector.qdrant import QdrantVectorStore
from draftkb.core.config import Settings


def get_vector_store(settings: Settings, scope: str) -> VectorStore:
    """One collection per scope ("documents" or "chunks")."""
    collection = f"{settings.VECTOR_COLLECTION}_{scope}"
    backend = (settings.VECTOR_BACKEND or "qdrant").lower()
    if backend == "memory":
        return MemoryVectorStore(collection)
    if backend == "qdrant":
        return QdrantVectorStore(
            url=settings.VECTOR_DB_URL,
            collection=collection,
            timeout=settings.VECTOR_TIMEOUT,
            recreate_on_dim_mismatch=settings.VECTOR_RECREATE_ON_DIM_MISMATCH,
        )
    raise ValueError(f"Unsupported vector backend: {settings.VECTOR_BACKEND}")
