"""Tests for the embedding service and its providers."""

import math

import pytest

from draftkb.adapters.embedding.base import EmbeddingProvider
from draftkb.adapters.embedding.offline import OfflineEmbedding
from draftkb.adapters.embedding.openai import OpenAIEmbedding
from draftkb.core.config import Settings
from draftkb.services.embed_service import EmbeddingService, build_provider, combine_texts


class FlakyProvider(EmbeddingProvider):
    """Remote-looking provider that fails on texts containing 'boom'."""

    name = "flaky"
    remote = True

    def __init__(self, dim: int):
        super().__init__(dim)
        self.calls: list[str] = []

    def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        if "boom" in text:
            raise ConnectionError("provider unreachable")
        return [1.0] + [0.0] * (self.dim - 1)


def test_offline_is_deterministic_and_unit_length():
    provider = OfflineEmbedding(64)
    a = provider.embed("Refund policy")
    b = OfflineEmbedding(64).embed("Refund policy")
    assert a == b
    assert len(a) == 64
    assert math.isclose(math.sqrt(sum(v * v for v in a)), 1.0, rel_tol=1e-9)
    assert provider.embed("Shipping policy") != a


def test_default_dimension_is_1536():
    assert len(EmbeddingService.from_settings(Settings(EMBED_PROVIDER="offline")).embed("x")) == 1536


def test_combine_texts():
    assert combine_texts("Refund Policy", "Refunds are processed in 5 days.", "how refunds work") == (
        "Refund Policy | how refunds work | Refunds are processed in 5 days."
    )
    assert combine_texts("Refund Policy", "Body") == "Refund Policy | Body"


def test_preprocess_collapses_whitespace_and_truncates():
    svc = EmbeddingService(OfflineEmbedding(8), max_chars=10)
    assert svc.preprocess("  a \n\n b\tc  ") == "a b c"
    assert svc.preprocess("x" * 50) == "x" * 10
    assert svc.embed("a  b") == svc.embed("a b")


def test_provider_failure_falls_back_to_offline():
    provider = FlakyProvider(16)
    svc = EmbeddingService(provider, batch_delay=0.0)

    vecs = svc.embed_batch(["fine", "boom goes the network", "also fine"])

    assert provider.calls == ["fine", "boom goes the network", "also fine"]
    assert vecs[0] == vecs[2] == [1.0] + [0.0] * 15
    assert vecs[1] == OfflineEmbedding(16).embed("boom goes the network")


def test_openai_without_key_falls_back():
    svc = EmbeddingService(OpenAIEmbedding(dim=12, model="text-embedding-3-small", api_key=None))
    assert svc.embed("hello") == OfflineEmbedding(12).embed("hello")


def test_wrong_dimension_is_a_provider_failure():
    class ShortProvider(EmbeddingProvider):
        name = "short"

        def embed(self, text):
            return self.check_dim([0.5, 0.5])

    svc = EmbeddingService(ShortProvider(4))
    assert len(svc.embed("anything")) == 4


def test_build_provider_rejects_unknown():
    with pytest.raises(ValueError):
        build_provider(Settings(EMBED_PROVIDER="carrier-pigeon"))
