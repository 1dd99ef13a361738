"""Embedding service with pluggable providers.

Providers (EMBED_PROVIDER):
- offline: deterministic hash-seeded vectors, no network (default)
- openai: OpenAI embeddings API
- local: sentence-transformers in-process (pip install .[local_ml])

Whatever the provider, a failed call never propagates: that one text gets the
offline vector and the failure is logged. All vectors have EMBED_DIM entries.
"""

from __future__ import annotations

import logging
import re
import time
from typing import List

from draftkb.adapters.embedding.base import EmbeddingProvider
from draftkb.adapters.embedding.local import LocalEmbedding
from draftkb.adapters.embedding.offline import OfflineEmbedding
from draftkb.adapters.embedding.openai import OpenAIEmbedding
from draftkb.core.config import Settings
from draftkb.core.errors import EmbeddingProviderFailure

logger = logging.getLogger(__name__)

COMBINE_DELIMITER = " | "
_WS_RE = re.compile(r"\s+")


def combine_texts(title: str, content: str, description: str | None = None) -> str:
    """Title, description and content joined for the combined embedding."""
    parts = [title]
    if description:
        parts.append(description)
    if content:
        parts.append(content)
    return COMBINE_DELIMITER.join(parts)


def build_provider(settings: Settings) -> EmbeddingProvider:
    provider = (settings.EMBED_PROVIDER or "offline").lower()
    if provider == "openai":
        return OpenAIEmbedding(
            dim=settings.EMBED_DIM,
            model=settings.EMBED_MODEL,
            api_key=settings.OPENAI_API_KEY,
            base_url=settings.OPENAI_BASE_URL,
        )
    if provider in {"local", "st", "sentence_transformers"}:
        return LocalEmbedding(dim=settings.EMBED_DIM, model=settings.LOCAL_EMBED_MODEL)
    if provider in {"offline", "mock"}:
        return OfflineEmbedding(dim=settings.EMBED_DIM)
    raise ValueError(f"Unsupported embedding provider: {settings.EMBED_PROVIDER}")


class EmbeddingService:
    def __init__(
        self,
        provider: EmbeddingProvider,
        max_chars: int = 8000,
        batch_delay: float = 0.1,
    ):
        self.provider = provider
        self.fallback = provider if isinstance(provider, OfflineEmbedding) else OfflineEmbedding(provider.dim)
        self.max_chars = max_chars
        self.batch_delay = batch_delay

    @classmethod
    def from_settings(cls, settings: Settings) -> "EmbeddingService":
        return cls(
            build_provider(settings),
            max_chars=settings.EMBED_MAX_CHARS,
            batch_delay=settings.EMBED_BATCH_DELAY,
        )

    @property
    def dim(self) -> int:
        return self.provider.dim

    def preprocess(self, text: str | None) -> str:
        return _WS_RE.sub(" ", text or "").strip()[: self.max_chars]

    def _embed_clean(self, text: str) -> list[float]:
        if self.provider is self.fallback:
            return self.fallback.embed(text)
        try:
            return self.provider.embed(text)
        except Exception as e:
            err = e if isinstance(e, EmbeddingProviderFailure) else EmbeddingProviderFailure(self.provider.name, str(e))
            logger.warning("%s; using offline embedding for %r", err.message, text[:50])
            return self.fallback.embed(text)

    def embed(self, text: str) -> list[float]:
        return self._embed_clean(self.preprocess(text))

    def embed_batch(self, texts: List[str]) -> list[list[float]]:
        # Sequential on purpose: remote providers are rate limited.
        out: list[list[float]] = []
        for i, text in enumerate(texts):
            if i and self.provider.remote and self.batch_delay > 0:
                time.sleep(self.batch_delay)
            out.append(self.embed(text))
        return out

    def close(self) -> None:
        self.provider.close()
