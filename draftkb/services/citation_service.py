from __future__ import annotations

import re

from draftkb.core.models import ChunkMatch, Citation, DocumentMatch, DraftTarget, KnowledgeContext

# Marker grammar shared by prompt building and auditing: [Source N] / [Ref N].
CITATION_MARKER_RE = re.compile(r"\[(source|ref)\s+(\d+)\]", re.IGNORECASE)

SOURCE_LABEL = "Source"
REF_LABEL = "Ref"


def citation_id(kind: str, n: int) -> str:
    return f"{kind.lower()}-{n}"


def _preview(text: str, limit: int) -> str:
    return f"{text[:limit]}..."


def assemble_citations(
    documents: list[DocumentMatch],
    chunks: list[ChunkMatch],
    preview_chars: int = 150,
) -> list[Citation]:
    """Number documents ``Source 1..N`` and chunks ``Ref 1..M``, each in rank order."""
    cites: list[Citation] = []
    for i, d in enumerate(documents, 1):
        cites.append(
            Citation(
                id=citation_id(SOURCE_LABEL, i),
                label=f"{SOURCE_LABEL} {i}",
                type="document",
                title=d.title,
                category=d.category,
                relevance_score=d.relevance_score,
                snippet=d.snippet,
                document_id=d.id,
            )
        )
    for i, c in enumerate(chunks, 1):
        cites.append(
            Citation(
                id=citation_id(REF_LABEL, i),
                label=f"{REF_LABEL} {i}",
                type="chunk",
                title=c.document_title,
                section=c.section_title,
                relevance_score=c.relevance_score,
                text=_preview(c.text, preview_chars),
                document_id=c.document_id,
                chunk_index=c.chunk_index,
            )
        )
    return cites


def assemble(context: KnowledgeContext, preview_chars: int = 150) -> list[Citation]:
    return assemble_citations(context.documents, context.chunks, preview_chars)


def _format_citation(c: Citation) -> str:
    if c.type == "document":
        return f"[{c.label}] {c.title} ({c.category or 'Uncategorized'}): {c.snippet or ''}"
    return f'[{c.label}] From "{c.title}": {c.text or ""}'


def build_prompt(citations: list[Citation], target: DraftTarget, instructions: str | None = None) -> str:
    """Prompt for a citation-aware reply to ``target``.

    Pure templating: only the citations passed in are listed.
    """
    system = (
        "You are an assistant writing professional business email replies using the company's "
        "knowledge base. State facts only when a listed source backs them."
    )
    sources = "\n".join(_format_citation(c) for c in citations) or (
        "No specific knowledge sources available for this query."
    )
    custom = f"\nCUSTOM INSTRUCTIONS: {instructions.strip()}\n" if instructions and instructions.strip() else ""
    return f"""{system}

EMAIL TO RESPOND TO:
Subject: {target.subject or 'N/A'}
From: {target.sender or 'N/A'}
Content: {target.body}

AVAILABLE KNOWLEDGE SOURCES:
{sources}
{custom}
REQUIREMENTS:
1. Only state facts that are backed by one of the sources above.
2. Put the citation marker immediately after the claim it supports.
3. Use the exact marker syntax [{SOURCE_LABEL} N] or [{REF_LABEL} N] with the numbers listed above.
4. Do not cite sources that are not listed.

REPLY:"""
