"""Tests for summaries/topics, title resolution and text extraction."""

import io

import pytest

from draftkb.core.errors import UnsupportedFormat
from draftkb.services.extract_service import extract, resolve_file_type
from draftkb.services.summary_service import business_context, extract_action_items, extract_topics, summarize
from draftkb.services.title_service import best_title


# -------------------------------------------------------------------------
# Tests: summary / topics
# -------------------------------------------------------------------------


def test_summary_takes_leading_sentences():
    text = "First sentence here. Second sentence follows. Third one. Fourth is dropped."
    assert summarize(text, max_chars=300, max_sentences=3) == (
        "First sentence here. Second sentence follows. Third one."
    )


def test_summary_stops_before_max_chars():
    text = "Short opener. " + "x" * 400 + "."
    assert summarize(text, max_chars=300) == "Short opener."


def test_summary_hard_truncates_when_no_sentence_fits():
    summary = summarize("x" * 400, max_chars=300)
    assert len(summary) == 303
    assert summary.endswith("...")


def test_topics_by_frequency_without_stop_words():
    text = "Refund refund refund. Policy policy. Customer. The the the would would would."
    assert extract_topics(text) == ["refund", "policy", "customer"]


def test_topic_ties_keep_first_occurrence():
    assert extract_topics("gamma alpha beta gamma alpha beta") == ["gamma", "alpha", "beta"]


def test_topics_are_limited():
    text = " ".join(f"word{i}" for i in range(20))
    assert len(extract_topics(text, limit=5)) == 5


def test_business_context():
    ctx = business_context("Our refund policy: email help@acme.com or call 555-123-4567. Fee is $25.00.")
    assert ctx["document_type"] == "policy"
    assert ctx["key_entities"] == ["help@acme.com", "555-123-4567", "$25.00"]
    assert ctx["action_items"] == []


def test_action_items_follow_pattern_order():
    text = "Please reply within two days. Customers must include the order number. Action: update the FAQ."
    assert extract_action_items(text) == [
        "must include the order number",
        "Action: update the FAQ",
        "Please reply within two days",
    ]


def test_action_items_are_capped():
    text = " ".join(f"You must do step {i}." for i in range(8))
    assert extract_action_items(text) == [f"must do step {i}" for i in range(5)]


# -------------------------------------------------------------------------
# Tests: titles
# -------------------------------------------------------------------------


def test_best_title_priority():
    assert best_title("Refund Policy", "refunds.txt", "# Something else") == "Refund Policy"
    assert best_title(None, "refunds.txt") == "refunds"
    assert best_title(None, "upload_0b6c5a1e-1111-2222-3333-444455556666.txt", "# Shipping Guide\nbody") == (
        "Shipping Guide"
    )
    assert best_title(None, None, None) == "Untitled document"


# -------------------------------------------------------------------------
# Tests: extraction
# -------------------------------------------------------------------------


@pytest.mark.parametrize(
    "declared,filename,expected",
    [
        ("text/plain", None, "txt"),
        ("text/markdown; charset=utf-8", None, "md"),
        ("application/octet-stream", "notes.md", "md"),
        (None, "report.PDF", "pdf"),
        ("docx", None, "docx"),
        ("application/vnd.openxmlformats-officedocument.spreadsheetml.sheet", None, "xlsx"),
        ("application/vnd.ms-excel", None, "xls"),
        ("application/octet-stream", "legacy.XLS", "xls"),
    ],
)
def test_resolve_file_type(declared, filename, expected):
    assert resolve_file_type(declared, filename) == expected


def test_unsupported_format_raises():
    with pytest.raises(UnsupportedFormat) as exc:
        extract(b"\x89PNG", "image/png", "logo.png")
    assert exc.value.code == "unsupported_format"


def test_plain_text_strips_bom():
    result = extract("\ufeffhello world".encode("utf-8"), "text/plain")
    assert result.text == "hello world"
    assert result.degraded is False


def test_html_drops_markup_and_scripts():
    html = b"<html><head><script>var x = 1;</script></head><body><h1>Refunds</h1><p>Five days.</p></body></html>"
    result = extract(html, "text/html")
    assert result.text == "Refunds\nFive days."


def test_broken_pdf_degrades_to_placeholder():
    result = extract(b"this is not a pdf", "application/pdf", "broken.pdf")
    assert result.degraded is True
    assert result.page_count == 1
    assert result.text.startswith("[PDF Document]")
    assert "broken.pdf" in result.text


def test_legacy_xls_keeps_a_placeholder_record():
    result = extract(b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1", "application/vnd.ms-excel", "prices.xls")
    assert result.degraded is True
    assert result.file_type == "xls"
    assert result.text.startswith("[XLS Document]")
    assert "prices.xls" in result.text


def test_docx_paragraphs_and_tables():
    from docx import Document

    d = Document()
    d.add_paragraph("Refund policy")
    table = d.add_table(rows=1, cols=2)
    table.rows[0].cells[0].text = "Plan"
    table.rows[0].cells[1].text = "Pro"
    buf = io.BytesIO()
    d.save(buf)

    result = extract(buf.getvalue(), "docx", "policy.docx")
    assert result.degraded is False
    assert result.text == "Refund policy\nPlan | Pro"


def test_xlsx_rows_per_sheet():
    from openpyxl import Workbook

    wb = Workbook()
    ws = wb.active
    ws.title = "Prices"
    ws.append(["Plan", "Price"])
    ws.append(["Pro", 25])
    buf = io.BytesIO()
    wb.save(buf)

    result = extract(buf.getvalue(), "xlsx", "prices.xlsx")
    assert result.degraded is False
    assert result.text == "Sheet: Prices\nPlan\tPrice\nPro\t25"
