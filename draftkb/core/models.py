from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, Field

DocumentStatus = Literal["uploading", "processing", "processed", "failed", "archived"]
ChunkType = Literal["paragraph", "heading", "list", "table"]
SearchMode = Literal["hybrid", "vector", "lexical"]
ServedBy = Literal["vector", "hybrid", "lexical", "lexical_fallback", "none"]
FileType = Literal["txt", "md", "csv", "html", "docx", "pdf", "xlsx", "xls"]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Chunk(BaseModel):
    text: str
    index: int
    document_id: str | None = None
    user_id: str | None = None
    page_number: int | None = None
    section_title: str | None = None
    chunk_type: ChunkType = "paragraph"
    context_before: str | None = None
    context_after: str | None = None
    embedding: list[float] | None = None


class DocumentEmbeddings(BaseModel):
    title_embedding: list[float] | None = None
    content_embedding: list[float] | None = None
    combined_embedding: list[float] | None = None


class ExtractionResult(BaseModel):
    text: str
    file_type: FileType
    page_count: int | None = None
    degraded: bool = False


class ProcessedDocument(BaseModel):
    title: str
    extracted_text: str
    word_count: int
    page_count: int | None = None
    summary: str = ""
    key_topics: list[str] = Field(default_factory=list)
    business_context: dict[str, Any] = Field(default_factory=dict)
    chunks: list[Chunk] = Field(default_factory=list)
    embeddings: DocumentEmbeddings = Field(default_factory=DocumentEmbeddings)
    degraded: bool = False


class Document(BaseModel):
    id: str
    user_id: str
    title: str
    description: str | None = None
    category: str | None = None
    tags: list[str] = Field(default_factory=list)
    status: DocumentStatus = "uploading"
    filename: str | None = None
    file_type: str | None = None
    file_size: int = 0
    file_hash: str | None = None
    extracted_text: str = ""
    word_count: int = 0
    page_count: int | None = None
    summary: str = ""
    key_topics: list[str] = Field(default_factory=list)
    business_context: dict[str, Any] = Field(default_factory=dict)
    title_embedding: list[float] | None = None
    content_embedding: list[float] | None = None
    combined_embedding: list[float] | None = None
    usage_count: int = 0
    processing_error: str | None = None
    failure_code: str | None = None
    created_at: datetime = Field(default_factory=utcnow)
    processed_at: datetime | None = None


class DocumentMatch(BaseModel):
    id: str
    title: str
    description: str | None = None
    category: str | None = None
    snippet: str = ""
    relevance_score: float = 0.0


class ChunkMatch(BaseModel):
    document_id: str
    document_title: str
    chunk_index: int
    text: str
    section_title: str | None = None
    chunk_type: ChunkType = "paragraph"
    relevance_score: float = 0.0


class Citation(BaseModel):
    id: str
    label: str
    type: Literal["document", "chunk"]
    title: str
    category: str | None = None
    section: str | None = None
    relevance_score: float = 0.0
    snippet: str | None = None
    text: str | None = None
    document_id: str | None = None
    chunk_index: int | None = None


class RetrievalResult(BaseModel):
    """One retrieval path's outcome.

    ``None`` means the branch failed; an empty list means it ran and found
    nothing.
    """

    documents: list[DocumentMatch] | None = None
    chunks: list[ChunkMatch] | None = None
    degraded: bool = False
    reason: str | None = None


class KnowledgeContext(BaseModel):
    query: str
    search_type: ServedBy = "none"
    documents: list[DocumentMatch] = Field(default_factory=list)
    chunks: list[ChunkMatch] = Field(default_factory=list)
    citations: list[Citation] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)
    degraded: bool = False
    fallback_reason: str | None = None

    @property
    def is_empty(self) -> bool:
        return not self.documents and not self.chunks


class DraftTarget(BaseModel):
    """The email a draft is being written for."""

    subject: str | None = None
    sender: str | None = None
    body: str = ""


class CitationAudit(BaseModel):
    used: list[str] = Field(default_factory=list)
    unused: list[str] = Field(default_factory=list)
    invalid_markers: list[str] = Field(default_factory=list)


class IngestResult(BaseModel):
    document_id: str
    status: DocumentStatus
    word_count: int = 0
    page_count: int | None = None
    summary: str = ""
    key_topics: list[str] = Field(default_factory=list)
    chunks: int = 0
    degraded: bool = False
    failure_code: str | None = None
    reason: str | None = None
