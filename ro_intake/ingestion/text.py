"""Plain-text extraction from PDF bytes.

Scanned images are not OCR'd: a page without a text layer yields an empty
string, which downstream code treats as "no fields found". Nothing in this
module raises on a bad document.
"""
from __future__ import annotations

import io
import logging
from typing import List

from pypdf import PdfReader

logger = logging.getLogger(__name__)


def _open(pdf_bytes: bytes) -> PdfReader | None:
    try:
        return PdfReader(io.BytesIO(pdf_bytes))
    except Exception as exc:
        logger.warning("Could not open PDF (%d bytes): %s", len(pdf_bytes or b""), exc)
        return None


def _page_text(reader: PdfReader, index: int) -> str:
    try:
        return reader.pages[index].extract_text() or ""
    except Exception as exc:
        logger.warning("Text extraction failed on page %d: %s", index, exc)
        return ""


def page_count(pdf_bytes: bytes) -> int:
    """Return the number of pages, or 0 when the document cannot be read."""

    reader = _open(pdf_bytes)
    if reader is None:
        return 0
    try:
        return len(reader.pages)
    except Exception as exc:
        logger.warning("Could not count PDF pages: %s", exc)
        return 0


def extract_page_texts(pdf_bytes: bytes) -> List[str]:
    """Extract text page by page, keeping page order."""

    reader = _open(pdf_bytes)
    if reader is None:
        return []
    try:
        total = len(reader.pages)
    except Exception as exc:
        logger.warning("Could not count PDF pages: %s", exc)
        return []
    return [_page_text(reader, index) for index in range(total)]


def extract_text(pdf_bytes: bytes) -> str:
    """Return the whole document's text with pages separated by newlines."""

    return "\n".join(extract_page_texts(pdf_bytes))
