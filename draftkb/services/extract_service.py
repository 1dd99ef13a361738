"""Turn uploaded bytes into plain text.

Plain formats are decoded directly. Rich formats go through their parsing
library; when that library is missing or chokes on the file, the upload still
produces a record with placeholder text instead of failing.
"""

import io
import logging
from pathlib import Path

from draftkb.core.errors import ExtractionDegraded, UnsupportedFormat
from draftkb.core.models import ExtractionResult

logger = logging.getLogger(__name__)

MIME_TYPES = {
    "text/plain": "txt",
    "text/markdown": "md",
    "text/x-markdown": "md",
    "text/csv": "csv",
    "application/csv": "csv",
    "text/html": "html",
    "application/pdf": "pdf",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": "docx",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": "xlsx",
    "application/vnd.ms-excel": "xls",
}
EXTENSIONS = {
    "txt": "txt", "text": "txt", "md": "md", "markdown": "md", "csv": "csv",
    "html": "html", "htm": "html", "pdf": "pdf", "docx": "docx", "xlsx": "xlsx", "xls": "xls",
}
RICH_TYPES = {"pdf", "docx", "xlsx", "xls"}


def resolve_file_type(declared_type: str | None, filename: str | None = None) -> str:
    """Map a MIME type or extension to one of the supported file types."""
    raw = (declared_type or "").strip().lower()
    if raw:
        mime = raw.split(";")[0].strip()
        if mime in MIME_TYPES:
            return MIME_TYPES[mime]
        ext = raw.lstrip(".")
        if ext in EXTENSIONS:
            return EXTENSIONS[ext]
        # generic upload MIME types fall through to the filename
        if mime not in ("application/octet-stream", "binary/octet-stream"):
            raise UnsupportedFormat(declared_type, filename)
    suffix = Path(filename or "").suffix.lower().lstrip(".")
    if suffix in EXTENSIONS:
        return EXTENSIONS[suffix]
    raise UnsupportedFormat(declared_type or suffix or None, filename)


def _decode(data: bytes) -> str:
    if data.startswith(b"\xef\xbb\xbf"):
        data = data[3:]
    return data.decode("utf-8", errors="replace")


def _extract_html(data: bytes) -> str:
    from bs4 import BeautifulSoup

    soup = BeautifulSoup(_decode(data), "html.parser")
    for tag in soup(["script", "style", "noscript"]):
        tag.extract()
    return "\n".join([line.strip() for line in soup.get_text("\n").splitlines() if line.strip()])


def _extract_docx(data: bytes) -> tuple[str, int | None]:
    from docx import Document as Docx

    d = Docx(io.BytesIO(data))
    parts = []
    for para in d.paragraphs:
        if para.text.strip():
            parts.append(para.text)
    for table in d.tables:
        for row in table.rows:
            cells = [c.text.strip() for c in row.cells if c.text.strip()]
            if cells:
                parts.append(" | ".join(cells))
    return "\n".join(parts), None


def _extract_pdf(data: bytes) -> tuple[str, int | None]:
    from pypdf import PdfReader

    reader = PdfReader(io.BytesIO(data))
    parts = []
    for page in reader.pages:
        t = page.extract_text() or ""
        if t.strip():
            parts.append(t)
    return "\n\n".join(parts), len(reader.pages)


def _extract_xlsx(data: bytes) -> tuple[str, int | None]:
    from openpyxl import load_workbook

    wb = load_workbook(io.BytesIO(data), read_only=True, data_only=True)
    try:
        blocks = []
        for ws in wb.worksheets:
            rows = []
            for row in ws.iter_rows(values_only=True):
                cells = ["" if v is None else str(v) for v in row]
                if any(c.strip() for c in cells):
                    rows.append("\t".join(cells).rstrip("\t"))
            blocks.append(f"Sheet: {ws.title}\n" + "\n".join(rows))
        return "\n\n".join(blocks), len(wb.worksheets)
    finally:
        wb.close()


def _extract_xls(data: bytes) -> tuple[str, int | None]:
    # openpyxl reads only the OOXML format; legacy workbooks keep the placeholder
    raise ExtractionDegraded("legacy .xls workbooks are not parsed", {"file_type": "xls"})


_RICH_EXTRACTORS = {
    "docx": _extract_docx,
    "pdf": _extract_pdf,
    "xlsx": _extract_xlsx,
    "xls": _extract_xls,
}


def placeholder_text(file_type: str, filename: str | None, size: int) -> str:
    size_kb = round(size / 1024)
    return (
        f"[{file_type.upper()} Document] - Upload successful, content extraction was skipped.\n\n"
        "Document Info:\n"
        f"- File name: {filename or 'unknown'}\n"
        f"- File size: {size_kb} KB\n"
        f"- Format: {file_type.upper()}\n"
        "- Processing status: awaiting manual text extraction"
    )


def extract(data: bytes, declared_type: str | None, filename: str | None = None) -> ExtractionResult:
    """Extract raw text from ``data``.

    Raises ``UnsupportedFormat`` for types outside the supported set; any other
    problem with a rich format degrades to placeholder text.
    """
    file_type = resolve_file_type(declared_type, filename)

    if file_type in ("txt", "md", "csv"):
        return ExtractionResult(text=_decode(data), file_type=file_type)
    if file_type == "html":
        return ExtractionResult(text=_extract_html(data), file_type=file_type)

    try:
        text, page_count = _RICH_EXTRACTORS[file_type](data)
        if not text.strip():
            raise ExtractionDegraded(f"no text found in {file_type} file")
        return ExtractionResult(text=text, file_type=file_type, page_count=page_count)
    except Exception as e:
        err = e if isinstance(e, ExtractionDegraded) else ExtractionDegraded(str(e), {"file_type": file_type})
        logger.warning("Extraction degraded for %s (%s): %s", filename or "upload", file_type, err.message)
        return ExtractionResult(
            text=placeholder_text(file_type, filename, len(data)),
            file_type=file_type,
            page_count=1 if file_type == "pdf" else None,
            degraded=True,
        )
