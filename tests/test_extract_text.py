"""Tests for policylens.services.extract_text."""
from unittest.mock import MagicMock, patch

import pytest

from policylens.services.extract_text import extract_pages, extract_text
from policylens.worker.errors import FatalInputError


def _fake_doc(page_texts):
    doc = MagicMock()
    doc.__len__.return_value = len(page_texts)
    pages = []
    for text in page_texts:
        page = MagicMock()
        if isinstance(text, Exception):
            page.get_text.side_effect = text
        else:
            page.get_text.return_value = text
        pages.append(page)
    doc.__getitem__.side_effect = lambda i: pages[i]
    return doc


def test_extract_text_decodes_txt():
    assert extract_text("Room rent is capped.".encode("utf-8"), "policy.txt") == "Room rent is capped."


def test_extract_text_empty_data_is_fatal():
    with pytest.raises(FatalInputError):
        extract_text(b"", "policy.pdf")


def test_extract_text_whitespace_only_is_fatal():
    with pytest.raises(FatalInputError):
        extract_text(b"   \n  ", "policy.txt")


def test_extract_pages_reports_per_page_status():
    doc = _fake_doc(["Page one text", "   ", RuntimeError("bad page")])
    with patch("policylens.services.extract_text.fitz.open", return_value=doc):
        pages = extract_pages(b"%PDF")

    assert [p["extraction_status"] for p in pages] == ["success", "empty", "failed"]
    assert pages[0]["page_number"] == 1
    assert pages[0]["text_length"] == len("Page one text")
    assert "bad page" in pages[2]["extraction_error"]
    doc.close.assert_called_once()


def test_extract_text_joins_pdf_pages():
    doc = _fake_doc(["First page", "", "Third page"])
    with patch("policylens.services.extract_text.fitz.open", return_value=doc):
        assert extract_text(b"%PDF", "policy.pdf") == "First page\nThird page"


def test_unopenable_pdf_is_fatal():
    with patch("policylens.services.extract_text.fitz.open", side_effect=RuntimeError("not a pdf")):
        with pytest.raises(FatalInputError, match="Failed to open PDF"):
            extract_pages(b"garbage")
