"""Split merged repair-order PDFs into one document per order."""
from __future__ import annotations

import io
import logging
import re
from dataclasses import dataclass
from pathlib import PurePath
from typing import List, Sequence, Tuple

from pypdf import PdfReader, PdfWriter

from ro_intake.ingestion.text import extract_page_texts

logger = logging.getLogger(__name__)

HEADER_MARKERS = [
    re.compile(r"repair\s+order", re.IGNORECASE),
    re.compile(r"\bR\.?\s?O\.?\s*#\s*\d+", re.IGNORECASE),
    re.compile(r"service\s+invoice", re.IGNORECASE),
    re.compile(r"work\s+order", re.IGNORECASE),
    re.compile(r"\binvoice\s*#\s*\d+", re.IGNORECASE),
]

PageRange = Tuple[int, int]


@dataclass
class DocumentSegment:
    """One repair-order candidate cut out of an uploaded file."""

    filename: str
    content: bytes
    text: str
    page_range: PageRange


def is_header_page(text: str) -> bool:
    """Return True when a page looks like the first page of a new order."""

    return any(marker.search(text or "") for marker in HEADER_MARKERS)


def detect_segments(page_texts: Sequence[str]) -> List[PageRange]:
    """Partition page indexes into contiguous ``(start, end)`` ranges.

    Page 0 always opens the first range. Every later page carrying a header
    marker closes the running range and opens a new one, so the ranges cover
    each page exactly once in order.
    """

    if not page_texts:
        raise ValueError("Cannot segment a document without pages")

    ranges: List[PageRange] = []
    start = 0
    for index in range(1, len(page_texts)):
        if is_header_page(page_texts[index]):
            ranges.append((start, index - 1))
            start = index
    ranges.append((start, len(page_texts) - 1))
    return ranges


def _segment_filename(filename: str, number: int, total: int) -> str:
    path = PurePath(filename or "repair_order.pdf")
    if total == 1:
        return path.name
    return f"{path.stem}_part{number}{path.suffix or '.pdf'}"


def _write_pages(reader: PdfReader, page_range: PageRange) -> bytes:
    writer = PdfWriter()
    start, end = page_range
    for index in range(start, end + 1):
        writer.add_page(reader.pages[index])
    buffer = io.BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


def split_document(pdf_bytes: bytes, filename: str) -> List[DocumentSegment]:
    """Detect order boundaries and materialize each range as its own PDF."""

    page_texts = extract_page_texts(pdf_bytes)
    if not page_texts:
        logger.warning("No readable pages in %s; keeping it as a single segment", filename)
        return [DocumentSegment(filename=_segment_filename(filename, 1, 1), content=pdf_bytes, text="", page_range=(0, 0))]

    ranges = detect_segments(page_texts)
    logger.info("Detected %d segment(s) across %d page(s) in %s", len(ranges), len(page_texts), filename)

    if len(ranges) == 1:
        return [
            DocumentSegment(
                filename=_segment_filename(filename, 1, 1),
                content=pdf_bytes,
                text="\n".join(page_texts),
                page_range=ranges[0],
            )
        ]

    reader = PdfReader(io.BytesIO(pdf_bytes))
    segments: List[DocumentSegment] = []
    for number, page_range in enumerate(ranges, start=1):
        start, end = page_range
        segments.append(
            DocumentSegment(
                filename=_segment_filename(filename, number, len(ranges)),
                content=_write_pages(reader, page_range),
                text="\n".join(page_texts[start : end + 1]),
                page_range=page_range,
            )
        )
    return segments
