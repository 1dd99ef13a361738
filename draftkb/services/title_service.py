from __future__ import annotations

import re
from pathlib import Path
from typing import Optional

from draftkb.services.text_service import sanitize

MAX_TITLE_CHARS = 120
_SCAN_LINES = 40

# Names produced by upload temp files or content-addressed storage: upload_<uuid>.<ext>, <sha256>.<ext>
_GENERIC_NAME_RE = re.compile(
    r"^(?:upload_[0-9a-fA-F\-]{8,}|[0-9a-f]{64})(?:\.[A-Za-z0-9]{1,8})?$"
)
_MD_HEADING_RE = re.compile(r"^#{1,6}\s+(.+)$")
_LEADING_MARKS_RE = re.compile(r"^[>*\-•\s]+")
_TRAILING_SEPS_RE = re.compile(r"[\-|:_\s]+$")


def is_generic_title(title: str | None) -> bool:
    return not (title or "").strip() or bool(_GENERIC_NAME_RE.match(title.strip()))


def _tidy(line: str) -> str:
    line = _LEADING_MARKS_RE.sub("", line.strip())
    return _TRAILING_SEPS_RE.sub("", " ".join(line.split()))


def extract_title_from_text(text: str | None) -> Optional[str]:
    """First markdown heading, else the first line that reads like a title.

    A line reads like a title when it is 6-120 characters and does not end
    like a sentence.
    """
    lines = [ln for ln in (text or "").splitlines() if ln.strip()][:_SCAN_LINES]
    if not lines:
        return None

    for line in lines:
        m = _MD_HEADING_RE.match(line.strip())
        if m and 4 <= len(_tidy(m.group(1))) <= MAX_TITLE_CHARS:
            return _tidy(m.group(1))

    for line in lines:
        cand = _tidy(line)
        if 6 <= len(cand) <= MAX_TITLE_CHARS and not cand.endswith((".", "!", "?")):
            return cand

    return _tidy(lines[0])[:MAX_TITLE_CHARS] or None


def best_title(title: str | None, filename: str | None = None, text: str | None = None) -> str:
    """Choose the display title for an upload.

    Priority:
      1) caller-supplied title
      2) filename without extension (unless it is a temp/hash name)
      3) extracted from the text
      4) "Untitled document"
    """
    title = sanitize(title)
    if title:
        return title

    name = Path(filename or "").name
    if not is_generic_title(name):
        stem = sanitize(Path(name).stem)
        if stem:
            return stem

    return sanitize(extract_title_from_text(text)) or "Untitled document"
