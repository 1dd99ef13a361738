"""In-process vector store for development and tests.

Exact cosine search over everything in the collection; nothing survives a
restart.
"""

import math
from typing import Any, Dict, List, Optional

from draftkb.adapters.vector.base import VectorStore


def cosine_similarity(a: list[float], b: list[float]) -> float:
    if len(a) != len(b):
        raise ValueError("Vectors must have the same dimension")
    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(x * x for x in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return dot / (norm_a * norm_b)


class MemoryVectorStore(VectorStore):
    def __init__(self, collection: str = "memory"):
        self.collection = collection
        self.dim: int | None = None
        self._points: Dict[str, tuple[List[float], Dict[str, Any]]] = {}

    def ensure_collection(self, dim: int) -> None:
        if self.dim != dim:
            self._points.clear()
        self.dim = dim

    def upsert(self, ids: List[str], vectors: List[List[float]], payloads: List[Dict[str, Any]]) -> None:
        if len(ids) != len(vectors) or len(ids) != len(payloads):
            raise ValueError("ids, vectors and payloads must have the same length")
        for i, v, p in zip(ids, vectors, payloads):
            if self.dim is not None and len(v) != self.dim:
                raise ValueError(f"expected {self.dim} dimensions, got {len(v)}")
            self._points[i] = (list(v), dict(p))

    def search(self, vector: List[float], top_k: int, filter: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        hits = []
        for pid, (vec, payload) in self._points.items():
            if filter and any(v is not None and payload.get(k) != v for k, v in filter.items()):
                continue
            hits.append({"id": pid, "score": cosine_similarity(vector, vec), "payload": payload})
        hits.sort(key=lambda h: h["score"], reverse=True)
        return hits[:top_k]

    def delete_by_doc_id(self, doc_id: str) -> None:
        for pid in [pid for pid, (_, p) in self._points.items() if p.get("document_id") == doc_id]:
            del self._points[pid]

    def __len__(self) -> int:
        return len(self._points)
