import re

# C0 controls except \t \n \r, DEL, C1 controls, and the replacement char
_CONTROL_RE = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F-\x9F\uFFFD]")
_MANY_NEWLINES_RE = re.compile(r"\n{3,}")
_WHITESPACE_RUN_RE = re.compile(r"\s{2,}")


def sanitize(text: str | None) -> str:
    """Strip characters storage can't take. Whitespace layout is kept."""
    if not text:
        return ""
    return _CONTROL_RE.sub("", text).strip()


def normalize(text: str | None) -> str:
    """Storage-safe, whitespace-normalized text. Idempotent."""
    if not text:
        return ""
    t = text.replace("\r\n", "\n")
    t = _CONTROL_RE.sub("", t)
    t = _MANY_NEWLINES_RE.sub("\n\n", t)
    t = _WHITESPACE_RUN_RE.sub(" ", t)
    return t.strip()


def count_words(text: str | None) -> int:
    return len((text or "").split())
