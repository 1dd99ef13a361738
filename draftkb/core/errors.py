"""Error taxonomy for the knowledge pipeline.

Only ``UnsupportedFormat`` ends an ingestion run. The others are raised inside
a service and handled there: extraction falls back to placeholder text,
embedding falls back to the offline provider, retrieval falls back to lexical
search and audit drops the marker.
"""

from __future__ import annotations

from typing import Any


class KnowledgeError(Exception):
    """Base class for pipeline errors."""

    code = "knowledge_error"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


class UnsupportedFormat(KnowledgeError):
    code = "unsupported_format"

    def __init__(self, declared_type: str | None, filename: str | None = None):
        details = {"declared_type": declared_type}
        if filename:
            details["filename"] = filename
        super().__init__(f"Unsupported file type: {declared_type or 'unknown'}", details)


class ExtractionDegraded(KnowledgeError):
    code = "extraction_degraded"


class EmbeddingProviderFailure(KnowledgeError):
    code = "embedding_provider_failure"

    def __init__(self, provider: str, message: str):
        super().__init__(f"{provider} embedding failed: {message}", {"provider": provider})
        self.provider = provider


class RetrievalBackendUnavailable(KnowledgeError):
    code = "retrieval_backend_unavailable"


class InvalidCitationMarker(KnowledgeError):
    code = "invalid_citation_marker"

    def __init__(self, marker: str):
        super().__init__(f"Citation marker {marker} has no matching citation", {"marker": marker})
        self.marker = marker
