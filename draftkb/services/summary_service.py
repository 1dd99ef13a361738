"""Extractive summary, keyword topics and light business context.

Nothing here calls a model; everything is deterministic so re-ingesting the
same file yields the same record.
"""

from __future__ import annotations

import re
from collections import Counter

from draftkb.services.chunk_service import split_sentences
from draftkb.services.text_service import sanitize

STOP_WORDS = frozenset("""
the a an and or but in on at to for of with by from up about into through during
before after above below between among this that these those i me my myself we our
ours ourselves you your yours yourself yourselves he him his himself she her hers
herself it its itself they them their theirs themselves what which who whom am is
are was were be been being have has had having do does did doing will would should
could can may might must shall also than then there here when where while very
just only other such some more most each every both either neither
""".split())

_PUNCT_RE = re.compile(r"[^\w\s]")
_EMAIL_RE = re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b")
_PHONE_RE = re.compile(r"\b\d{3}[-.]?\d{3}[-.]?\d{4}\b")
_AMOUNT_RE = re.compile(r"\$\d[\d,]*(?:\.\d+)?")
# applied in order; the first MAX_ACTION_ITEMS matches are kept
_ACTION_RES = [
    re.compile(r"(?:must|should|need to|required to|have to)\s+[^.!?]+", re.IGNORECASE),
    re.compile(r"(?:action|todo|task):\s*[^.!?]+", re.IGNORECASE),
    re.compile(r"(?:please|kindly)\s+[^.!?]+", re.IGNORECASE),
]
MAX_ACTION_ITEMS = 5

# first keyword hit wins
_DOC_TYPES = [
    ("policy", ("policy", "procedure")),
    ("legal", ("contract", "agreement")),
    ("product", ("product", "feature")),
    ("support", ("customer", "support")),
    ("marketing", ("marketing", "campaign")),
]


def summarize(text: str, max_chars: int = 300, max_sentences: int = 3) -> str:
    parts: list[str] = []
    length = 0
    for sentence in split_sentences(text)[:max_sentences]:
        added = len(sentence) + (1 if parts else 0)
        if length + added > max_chars:
            break
        parts.append(sentence)
        length += added
    if parts:
        return sanitize(" ".join(parts))
    text = sanitize(text)
    if len(text) <= max_chars:
        return text
    return sanitize(text[:max_chars]) + "..."


def extract_topics(text: str, limit: int = 5) -> list[str]:
    """Most frequent non-stop-words longer than three characters.

    Ties keep first-occurrence order (Counter preserves insertion order and
    most_common sorts stably).
    """
    words = _PUNCT_RE.sub(" ", (text or "").lower()).split()
    freq = Counter(w for w in words if len(w) > 3 and w not in STOP_WORDS)
    topics = [sanitize(w) for w, _ in freq.most_common(limit)]
    return [t for t in topics if t]


def classify_document(text: str) -> str:
    lower = (text or "").lower()
    for doc_type, keywords in _DOC_TYPES:
        if any(k in lower for k in keywords):
            return doc_type
    return "general"


def extract_entities(text: str) -> list[str]:
    text = text or ""
    entities: list[str] = []
    for pattern in (_EMAIL_RE, _PHONE_RE, _AMOUNT_RE):
        for m in pattern.findall(text):
            if m not in entities:
                entities.append(m)
    return entities


def extract_action_items(text: str) -> list[str]:
    items = [m.group(0).strip() for pattern in _ACTION_RES for m in pattern.finditer(text or "")]
    return items[:MAX_ACTION_ITEMS]


def business_context(text: str) -> dict:
    return {
        "document_type": classify_document(text),
        "key_entities": extract_entities(text)[:20],
        "action_items": extract_action_items(text),
    }
