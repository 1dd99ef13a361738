import re

from draftkb.core.models import Chunk, ChunkType

# a sentence is everything up to a run of terminators; the tail may have none
SENTENCE_RE = re.compile(r"[^.!?]*[.!?]+|[^.!?]+$")

# markdown-ish headings, plus ALLCAPS headings heuristic
MD_HEAD_RE = re.compile(r"^(#{1,6})\s+(.+)$", re.MULTILINE)
ALLCAPS_HEAD_RE = re.compile(r"^(?=.{4,80}$)[A-Z0-9][A-Z0-9\s\-,:()]{3,}$", re.MULTILINE)
LABEL_HEAD_RE = re.compile(r"^(?=.{2,80}$)([A-Z][^.!?\n]*):\s*$", re.MULTILINE)

# chunk type heuristics, checked in this order
HEADING_RE = re.compile(r"^\s*#{1,6}\s|^[A-Z][^.!?\n]{0,80}:?\s*$", re.MULTILINE)
LIST_RE = re.compile(r"^\s*[-*+•]\s|^\s*\d+[.)]\s", re.MULTILINE)
TABLE_RE = re.compile(r"\|\s*\w+\s*\||\t\w+\t")


def split_sentences(text: str) -> list[str]:
    return [s.strip() for s in SENTENCE_RE.findall(text or "") if s.strip()]


def detect_chunk_type(text: str) -> ChunkType:
    if HEADING_RE.search(text):
        return "heading"
    if LIST_RE.search(text):
        return "list"
    if TABLE_RE.search(text):
        return "table"
    return "paragraph"


def _section_title(sentence: str) -> str | None:
    found = None
    for line in sentence.splitlines():
        line = line.strip()
        if not line:
            continue
        m = MD_HEAD_RE.match(line)
        if m:
            found = m.group(2).strip()
            continue
        m = LABEL_HEAD_RE.match(line)
        if m:
            found = m.group(1).strip()
            continue
        if ALLCAPS_HEAD_RE.match(line):
            found = line
    return found


def chunk_text(
    text: str,
    chunk_size: int = 1000,
    overlap: int = 200,
    page_count: int | None = None,
) -> list[Chunk]:
    """Split normalized text into overlapping sentence-aligned chunks.

    A chunk is closed when the next sentence would push it past
    ``chunk_size``; the next chunk starts with the last ``overlap`` characters
    of the closed one. Sentences are never split, so a single sentence longer
    than ``chunk_size`` yields an oversized chunk.
    """
    size = chunk_size
    if size <= 0:
        raise ValueError("chunk_size must be positive")
    if overlap < 0 or overlap >= size:
        raise ValueError("overlap must be in [0, chunk_size)")

    pieces: list[tuple[str, str | None]] = []
    buf = ""
    buf_section: str | None = None
    section: str | None = None

    for sentence in split_sentences(text):
        section = _section_title(sentence) or section
        if buf and len(buf) + 1 + len(sentence) > size:
            closed = buf.strip()
            pieces.append((closed, buf_section))
            tail = closed[-overlap:].strip() if overlap else ""
            buf = f"{tail} {sentence}" if tail else sentence
            buf_section = section
        elif buf:
            buf = f"{buf} {sentence}"
        else:
            buf = sentence
            buf_section = section

    if buf.strip():
        pieces.append((buf.strip(), buf_section))

    chunks = [
        Chunk(
            text=body,
            index=i,
            section_title=sect,
            chunk_type=detect_chunk_type(body),
            page_number=1 if page_count == 1 else None,
        )
        for i, (body, sect) in enumerate(pieces)
    ]

    # neighbours are only known once the whole list exists
    for prev, nxt in zip(chunks, chunks[1:]):
        prev.context_after = nxt.text[:overlap] if overlap else None
        nxt.context_before = prev.text[-overlap:] if overlap else None
    return chunks
