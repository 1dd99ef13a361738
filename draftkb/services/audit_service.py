"""Which citations did a generated draft actually use?

Stateless: works on any (text, citation list) pair. Markers whose label is
not in the list are dropped, so a hallucinated ``[Source 9]`` costs citation
completeness instead of failing the response.
"""

from __future__ import annotations

import logging

from draftkb.core.errors import InvalidCitationMarker
from draftkb.core.models import Citation, CitationAudit
from draftkb.services.citation_service import CITATION_MARKER_RE, citation_id
from draftkb.services.store_service import DocumentStore

logger = logging.getLogger(__name__)


def _scan(text: str, citations: list[Citation]) -> tuple[list[str], list[str]]:
    known = {c.id for c in citations}
    used: list[str] = []
    invalid: list[str] = []
    for m in CITATION_MARKER_RE.finditer(text or ""):
        cid = citation_id(m.group(1), int(m.group(2)))
        if cid in known:
            if cid not in used:
                used.append(cid)
            continue
        err = InvalidCitationMarker(m.group(0))
        logger.debug(err.message)
        if m.group(0) not in invalid:
            invalid.append(m.group(0))
    return used, invalid


def extract_used(text: str, citations: list[Citation]) -> list[str]:
    """Citation ids referenced in ``text``, in order of first appearance."""
    return _scan(text, citations)[0]


def audit(text: str, citations: list[Citation]) -> CitationAudit:
    used, invalid = _scan(text, citations)
    return CitationAudit(
        used=used,
        unused=[c.id for c in citations if c.id not in used],
        invalid_markers=invalid,
    )


def record_usage(store: DocumentStore, result: CitationAudit, citations: list[Citation]) -> list[str]:
    """Bump usage_count once per document behind a used citation."""
    by_id = {c.id: c for c in citations}
    doc_ids = list(dict.fromkeys(
        by_id[cid].document_id for cid in result.used if cid in by_id and by_id[cid].document_id
    ))
    store.increment_usage(doc_ids)
    logger.info("Recorded usage for %d documents", len(doc_ids))
    return doc_ids
