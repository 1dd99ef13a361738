import hashlib
import math

from draftkb.adapters.embedding.base import EmbeddingProvider


def text_seed(text: str) -> int:
    """Stable signed 32-bit seed for ``text`` (same across processes)."""
    digest = hashlib.sha256(text.encode("utf-8")).digest()
    return int.from_bytes(digest[:4], "big", signed=True)


class OfflineEmbedding(EmbeddingProvider):
    """Deterministic hash-seeded vectors.

    Same text, same vector, bit for bit, and always unit length. There is no
    semantic signal in these: they keep ingestion and retrieval working
    without a provider, they do not make retrieval good.
    """

    name = "offline"

    def embed(self, text: str) -> list[float]:
        seed = text_seed(text)
        vec = []
        for i in range(self.dim):
            s = seed + i * 31
            vec.append(math.sin(s) * 0.5 + math.cos(s * 1.5) * 0.3 + math.sin(s * 0.7) * 0.2)
        norm = math.sqrt(sum(v * v for v in vec))
        if norm == 0:
            return [1.0] + [0.0] * (self.dim - 1)
        return [v / norm for v in vec]
