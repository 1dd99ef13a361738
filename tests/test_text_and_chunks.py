"""Tests for normalization and sentence-aligned chunking."""

import pytest

from draftkb.services.chunk_service import chunk_text, detect_chunk_type, split_sentences
from draftkb.services.text_service import count_words, normalize, sanitize


def sentence_text(n: int) -> str:
    """n sentences of 47 characters each, joined by single spaces."""
    return " ".join(f"Sentence {i:02d} explains the refund handling rules." for i in range(1, n + 1))


# -------------------------------------------------------------------------
# Tests: normalize / sanitize
# -------------------------------------------------------------------------


@pytest.mark.parametrize(
    "text",
    [
        "",
        "plain",
        "  leading and trailing  ",
        "line one\r\nline two\r\n\r\n\r\n\r\nline three",
        "tabs\t\tand   spaces\n\n\n\nand\x00nulls\x07",
        "\ufeffBOM-ish \x1b[31mcolour\x1b[0m \ufffd replaced",
        "# Heading\n\n- item one\n- item two\n\n| a | b |",
    ],
)
def test_normalize_is_idempotent(text):
    once = normalize(text)
    assert normalize(once) == once


def test_normalize_collapses_whitespace_and_controls():
    assert normalize("a\x00b   c\r\n\r\n\r\n\r\nd") == "ab c d"


def test_sanitize_keeps_layout():
    assert sanitize(" line\x01 one\nline two ") == "line one\nline two"


def test_count_words():
    assert count_words("Refunds are processed in 5 days.") == 6
    assert count_words(None) == 0


# -------------------------------------------------------------------------
# Tests: chunking
# -------------------------------------------------------------------------


def test_split_sentences_keeps_tail_without_terminator():
    assert split_sentences("One. Two! Three? tail") == ["One.", "Two!", "Three?", "tail"]


def test_2500_character_document_gives_three_paragraph_chunks():
    text = sentence_text(52)
    assert len(text) == 2495

    chunks = chunk_text(text, chunk_size=1000, overlap=200)

    assert len(chunks) == 3
    assert [c.chunk_type for c in chunks] == ["paragraph"] * 3
    assert chunks[0].context_after == chunks[1].text[:200]
    assert chunks[1].context_before == chunks[0].text[-200:]
    assert chunks[0].context_before is None
    assert chunks[-1].context_after is None


def test_chunk_indices_are_contiguous_and_cover_text():
    text = sentence_text(80)
    chunks = chunk_text(text, chunk_size=500, overlap=100)
    assert [c.index for c in chunks] == list(range(len(chunks)))
    assert sum(len(c.text) for c in chunks) >= len(text)


@pytest.mark.parametrize("size,overlap", [(300, 50), (500, 0), (1000, 200), (750, 120)])
def test_chunks_stay_within_budget(size, overlap):
    chunks = chunk_text(sentence_text(60), chunk_size=size, overlap=overlap)
    assert all(len(c.text) <= size for c in chunks)
    for prev, nxt in zip(chunks, chunks[1:]):
        shared = prev.text[-overlap:].strip() if overlap else ""
        if shared:
            assert nxt.text.startswith(shared)
        else:
            assert nxt.context_before is None


def test_oversized_sentence_is_never_split():
    long_sentence = "A" * 50 + "."
    chunks = chunk_text(f"{long_sentence} Short one.", chunk_size=20, overlap=5)
    assert chunks[0].text == long_sentence
    assert chunks[1].text.endswith("Short one.")


def test_overlap_must_be_smaller_than_chunk_size():
    with pytest.raises(ValueError):
        chunk_text("Anything.", chunk_size=100, overlap=100)


def test_single_page_documents_get_page_number():
    assert chunk_text("One sentence.", page_count=1)[0].page_number == 1
    assert chunk_text("One sentence.", page_count=3)[0].page_number is None


def test_empty_text_has_no_chunks():
    assert chunk_text("") == []


@pytest.mark.parametrize(
    "text,expected",
    [
        ("# Refunds\nAll refunds go through support.", "heading"),
        ("Shipping Options", "heading"),
        ("we offer:\n- standard shipping\n- express shipping", "list"),
        ("prices below. | plan | price | apply.", "table"),
        ("refunds are processed in five business days. contact support for help.", "paragraph"),
    ],
)
def test_detect_chunk_type(text, expected):
    assert detect_chunk_type(text) == expected
