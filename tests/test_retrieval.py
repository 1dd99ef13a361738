"""Tests for knowledge retrieval and its lexical fallback."""

import threading

import pytest

from draftkb.adapters.vector.memory import MemoryVectorStore
from draftkb.services.pipeline_service import DocumentProcessor
from draftkb.services.retrieve_service import (
    GENERIC_SUGGESTIONS,
    RetrievalService,
    build_suggestions,
)

USER = "user-1"


class FailingSearch(MemoryVectorStore):
    """Accepts writes, refuses searches."""

    def search(self, vector, top_k, filter=None):
        raise RuntimeError("Qdrant search returned status 'error'")


class HangingSearch(MemoryVectorStore):
    def __init__(self, collection):
        super().__init__(collection)
        self.release = threading.Event()

    def search(self, vector, top_k, filter=None):
        self.release.wait(5)
        return []


@pytest.fixture
def corpus(ingest):
    return {
        "refunds": ingest(
            "Refunds are processed within five business days. Refund requests need the order number.",
            "Refund Policy",
            category="Company Policies",
        ).document_id,
        "shipping": ingest(
            "Shipping is free for orders above fifty dollars. Express shipping costs extra.",
            "Shipping Guide",
            category="Product Information",
        ).document_id,
        "onboarding": ingest(
            "New customers get a welcome call within two days.",
            "Onboarding",
            category="Customer Service",
        ).document_id,
    }


def _retriever(store, embedder, doc_vectors, chunk_vectors, **kwargs):
    return RetrievalService(store, embedder, doc_vectors, chunk_vectors, **kwargs)


# -------------------------------------------------------------------------
# Tests: search modes
# -------------------------------------------------------------------------


def test_lexical_ranks_matching_document_first(retriever, corpus):
    ctx = retriever.retrieve(USER, "refund order number", mode="lexical")

    assert ctx.search_type == "lexical"
    assert ctx.degraded is False
    assert ctx.documents[0].id == corpus["refunds"]
    assert ctx.documents[0].relevance_score == 1.0
    assert all(0.0 <= d.relevance_score <= 1.0 for d in ctx.documents)
    assert corpus["onboarding"] not in [d.id for d in ctx.documents]
    assert ctx.chunks and ctx.chunks[0].document_id == corpus["refunds"]


def test_vector_scores_are_clamped_and_ordered(retriever, corpus):
    ctx = retriever.retrieve(USER, "anything at all", mode="vector")

    assert ctx.search_type == "vector"
    assert 0 < len(ctx.documents) <= 5
    scores = [d.relevance_score for d in ctx.documents]
    assert scores == sorted(scores, reverse=True)
    assert all(0.0 <= s <= 1.0 for s in scores)
    chunk_scores = [c.relevance_score for c in ctx.chunks]
    assert chunk_scores == sorted(chunk_scores, reverse=True)


def test_hybrid_fuses_vector_and_lexical(retriever, corpus):
    ctx = retriever.retrieve(USER, "shipping", mode="hybrid")

    assert ctx.search_type == "hybrid"
    ids = [d.id for d in ctx.documents]
    assert set(ids) <= set(corpus.values())
    # lexical weight lifts the only textual match above its vector-only score
    shipping = next(d for d in ctx.documents if d.id == corpus["shipping"])
    assert shipping.relevance_score >= 0.3


def test_limit_and_category(retriever, corpus):
    ctx = retriever.retrieve(USER, "days", limit=1, mode="lexical")
    assert len(ctx.documents) == 1

    ctx = retriever.retrieve(USER, "shipping refunds", mode="lexical", category="Company Policies")
    assert [d.id for d in ctx.documents] == [corpus["refunds"]]
    assert all(c.document_id == corpus["refunds"] for c in ctx.chunks)


def test_results_are_scoped_to_user(retriever, corpus, ingest):
    ingest("Refund secrets of another tenant.", "Other Refunds", user_id="user-2")
    for mode in ("lexical", "vector", "hybrid"):
        ctx = retriever.retrieve(USER, "refund", mode=mode)
        assert all(d.id in corpus.values() for d in ctx.documents)


def test_archived_documents_are_not_returned(retriever, store, corpus):
    store.archive_document(corpus["refunds"])
    for mode in ("lexical", "vector", "hybrid"):
        ctx = retriever.retrieve(USER, "refund order number", mode=mode)
        assert corpus["refunds"] not in [d.id for d in ctx.documents]
        assert corpus["refunds"] not in [c.document_id for c in ctx.chunks]


def test_empty_query_returns_empty_context(retriever, corpus):
    ctx = retriever.retrieve(USER, "   ")
    assert ctx.is_empty
    assert ctx.search_type == "none"


# -------------------------------------------------------------------------
# Tests: degradation
# -------------------------------------------------------------------------


def test_vector_failure_falls_back_to_lexical(store, embedder):
    failing_docs, failing_chunks = FailingSearch("documents"), FailingSearch("chunks")
    retriever = _retriever(store, embedder, failing_docs, failing_chunks)
    try:
        DocumentProcessor(store, embedder, failing_docs, failing_chunks).ingest_document(
            USER, b"Refunds are processed within five business days.", "text/plain", "refunds.txt",
            title="Refund Policy",
        )

        ctx = retriever.retrieve(USER, "refunds processed", mode="hybrid")

        assert ctx is not None
        assert ctx.search_type == "lexical_fallback"
        assert ctx.degraded is True
        assert "status 'error'" in ctx.fallback_reason
        assert [d.title for d in ctx.documents] == ["Refund Policy"]
        assert [c.label for c in ctx.citations][:1] == ["Source 1"]
    finally:
        retriever.close()


def test_hung_backend_times_out_into_fallback(store, embedder, corpus):
    docs, chunks = HangingSearch("documents"), HangingSearch("chunks")
    retriever = _retriever(store, embedder, docs, chunks, timeout=0.2)
    try:
        ctx = retriever.retrieve(USER, "refund", mode="vector")
        assert ctx.search_type == "lexical_fallback"
        assert "timed out" in ctx.fallback_reason
        assert ctx.documents
    finally:
        docs.release.set()
        chunks.release.set()
        retriever.close()


def test_chunk_failure_in_fallback_keeps_documents(store, embedder, corpus, monkeypatch):
    retriever = _retriever(store, embedder, FailingSearch("d"), FailingSearch("c"))

    def no_chunks(*args, **kwargs):
        raise RuntimeError("chunks table locked")

    monkeypatch.setattr(store, "list_user_chunks", no_chunks)
    try:
        ctx = retriever.retrieve(USER, "refund", mode="vector")
        assert ctx.search_type == "lexical_fallback"
        assert ctx.documents
        assert ctx.chunks == []
        assert ctx.degraded is True
    finally:
        retriever.close()


def test_total_failure_returns_empty_context(store, embedder, corpus, monkeypatch):
    retriever = _retriever(store, embedder, FailingSearch("d"), FailingSearch("c"))

    def broken(*args, **kwargs):
        raise RuntimeError("database is gone")

    monkeypatch.setattr(store, "list_documents", broken)
    try:
        ctx = retriever.retrieve(USER, "refund", mode="hybrid")
        assert ctx.search_type == "none"
        assert ctx.is_empty
        assert ctx.degraded is True
        assert ctx.citations == []
    finally:
        retriever.close()


# -------------------------------------------------------------------------
# Tests: suggestions
# -------------------------------------------------------------------------


def test_suggestions_follow_categories(retriever, corpus):
    ctx = retriever.retrieve(USER, "refund shipping welcome", mode="lexical")
    assert 'Reference company policy from "Refund Policy"' in ctx.suggestions
    assert 'Include product details from "Shipping Guide"' in ctx.suggestions
    assert 'Use customer service guidelines from "Onboarding"' in ctx.suggestions


def test_generic_suggestions_without_known_categories():
    assert build_suggestions([]) == GENERIC_SUGGESTIONS
