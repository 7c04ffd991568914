"""PDF text extraction degrades to empty results instead of raising."""
import logging

from conftest import make_pdf

from ro_intake.ingestion.text import extract_page_texts, extract_text, page_count


def test_extract_page_texts_keeps_page_order():
    pdf = make_pdf([["REPAIR ORDER RO# 1"], ["Second page"], ["Third page"]])

    texts = extract_page_texts(pdf)

    assert len(texts) == 3
    assert "REPAIR ORDER" in texts[0]
    assert "Second" in texts[1]
    assert "Third" in texts[2]
    assert page_count(pdf) == 3


def test_extract_text_joins_pages():
    pdf = make_pdf([["Customer: John Smith"], ["Total: $12.00"]])

    text = extract_text(pdf)

    assert "John Smith" in text
    assert "$12.00" in text
    assert text.index("John Smith") < text.index("$12.00")


def test_unreadable_pdf_returns_empty_and_logs(caplog):
    caplog.set_level(logging.WARNING)

    assert extract_page_texts(b"this is not a pdf") == []
    assert extract_text(b"this is not a pdf") == ""
    assert page_count(b"") == 0
    assert any("Could not open PDF" in message for message in caplog.messages)


def test_blank_page_yields_empty_string():
    pdf = make_pdf([[]])

    assert extract_page_texts(pdf) == [""]
