from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from draftkb.adapters.vector.base import VectorStore

logger = logging.getLogger(__name__)


def _meta_filter_to_qdrant_filter(meta_filter: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Convert simple {key: value} filters into Qdrant REST filter schema."""
    if not meta_filter:
        return None
    must = []
    for k, v in meta_filter.items():
        if v is None:
            continue
        # Qdrant match supports strings, numbers, bools
        must.append({"key": k, "match": {"value": v}})
    return {"must": must} if must else None


class QdrantVectorStore(VectorStore):
    """Qdrant collection over the REST API.

    REST keeps us independent of SDK response shapes, which change between
    versions. The httpx client is owned by the store; call ``close()`` on
    shutdown.
    """

    def __init__(
        self,
        url: str,
        collection: str,
        timeout: float = 10.0,
        recreate_on_dim_mismatch: bool = True,
        client: httpx.Client | None = None,
    ):
        self.url = url.rstrip("/")
        self.collection = collection
        self.recreate_on_dim_mismatch = recreate_on_dim_mismatch
        self._client = client or httpx.Client(base_url=self.url, timeout=timeout)

    @staticmethod
    def _normalize_hit(hit: Dict[str, Any]) -> Dict[str, Any]:
        pid = hit.get("id")
        return {
            "id": str(pid) if pid is not None else None,
            "score": float(hit.get("score") or 0.0),
            "payload": hit.get("payload") or {},
        }

    def _existing_dim(self) -> Optional[int]:
        r = self._client.get(f"/collections/{self.collection}")
        if r.status_code == 404:
            return None
        r.raise_for_status()
        params = r.json().get("result", {}).get("config", {}).get("params", {})
        vectors = params.get("vectors") or {}
        # plain {"size": n} or named vectors {"default": {"size": n}}
        if isinstance(vectors.get("default"), dict):
            vectors = vectors["default"]
        size = vectors.get("size")
        return int(size) if size is not None else None

    def ensure_collection(self, dim: int) -> None:
        """Ensure the collection exists AND has the expected embedding dimension.

        Qdrant hard-fails upserts/searches when vector size mismatches, which
        happens after switching embedding models on a persisted volume.
        """
        existing_dim = self._existing_dim()
        if existing_dim == dim:
            return
        if existing_dim is not None:
            if not self.recreate_on_dim_mismatch:
                raise RuntimeError(
                    f"Qdrant collection '{self.collection}' has dim={existing_dim} but expected dim={dim}. "
                    "Set VECTOR_RECREATE_ON_DIM_MISMATCH=true to auto-recreate."
                )
            logger.warning(
                "Recreating Qdrant collection %s: dim %s -> %s (stored vectors are dropped)",
                self.collection, existing_dim, dim,
            )
            self._client.delete(f"/collections/{self.collection}").raise_for_status()

        body = {"vectors": {"size": dim, "distance": "Cosine"}}
        self._client.put(f"/collections/{self.collection}", json=body).raise_for_status()
        for field in ("user_id", "document_id"):
            self._client.put(
                f"/collections/{self.collection}/index?wait=true",
                json={"field_name": field, "field_schema": "keyword"},
            ).raise_for_status()

    def upsert(self, ids: List[str], vectors: List[List[float]], payloads: List[Dict[str, Any]]) -> None:
        if not ids:
            return
        points = [{"id": i, "vector": v, "payload": p} for i, v, p in zip(ids, vectors, payloads)]
        r = self._client.put(
            f"/collections/{self.collection}/points?wait=true",
            json={"points": points},
        )
        r.raise_for_status()

    def search(self, vector: List[float], top_k: int, filter: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        payload: Dict[str, Any] = {
            "vector": vector,
            "limit": top_k,
            "with_payload": True,
        }
        qfilter = _meta_filter_to_qdrant_filter(filter or {})
        if qfilter:
            payload["filter"] = qfilter
        r = self._client.post(f"/collections/{self.collection}/points/search", json=payload)
        r.raise_for_status()
        body = r.json()
        if body.get("status") not in (None, "ok"):
            raise RuntimeError(f"Qdrant search returned status {body.get('status')!r}")
        return [self._normalize_hit(h) for h in body.get("result", [])]

    def delete_by_doc_id(self, doc_id: str) -> None:
        """Delete all points that belong to a document (by payload field `document_id`)."""
        body = {"filter": {"must": [{"key": "document_id", "match": {"value": doc_id}}]}}
        r = self._client.post(f"/collections/{self.collection}/points/delete?wait=true", json=body)
        if r.status_code == 404:
            return
        r.raise_for_status()

    def health(self) -> bool:
        try:
            return self._client.get("/collections").status_code == 200
        except httpx.HTTPError:
            return False

    def close(self) -> None:
        self._client.close()
