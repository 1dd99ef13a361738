import re

from rank_bm25 import BM25L

_TOKEN_RE = re.compile(r"\w+")


def tokenize(text: str) -> list[str]:
    return _TOKEN_RE.findall((text or "").lower())


class BM25Index:
    """BM25 over (id, text) pairs.

    BM25L rather than Okapi: Okapi's idf goes to zero or below on the tiny
    per-user corpora we index, BM25L's stays positive. Only records sharing
    at least one token with the query are returned.
    """

    def __init__(self):
        self._bm25 = None
        self._ids = []
        self._tokens = []

    def build(self, records: list[tuple[str, str]]):
        self._ids = [rid for rid, _ in records]
        self._tokens = [tokenize(text) for _, text in records]
        self._bm25 = BM25L(self._tokens) if any(self._tokens) else None
        return self

    def search(self, query: str, top_k: int = 20) -> list[dict]:
        if not self._bm25:
            return []
        terms = tokenize(query)
        if not terms:
            return []
        wanted = set(terms)
        scores = self._bm25.get_scores(terms)
        ranked = sorted(
            (i for i in range(len(scores)) if wanted.intersection(self._tokens[i])),
            key=lambda i: scores[i],
            reverse=True,
        )[:top_k]
        return [{"id": self._ids[i], "bm25_score": float(scores[i])} for i in ranked]
