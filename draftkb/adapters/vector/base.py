from abc import ABC, abstractmethod

class VectorStore(ABC):
    """One collection of vectors with flat payloads.

    ``search`` returns dicts with ``id``, ``score`` (cosine similarity) and
    ``payload``; ``filter`` is an exact-match ``{key: value}`` mapping.
    """

    @abstractmethod
    def ensure_collection(self, dim: int) -> None: ...
    @abstractmethod
    def upsert(self, ids: list[str], vectors: list[list[float]], payloads: list[dict]) -> None: ...
    @abstractmethod
    def search(self, vector: list[float], top_k: int, filter: dict | None = None) -> list[dict]: ...
    @abstractmethod
    def delete_by_doc_id(self, doc_id: str) -> None: ...

    def health(self) -> bool:
        return True

    def close(self) -> None:
        pass
