"""Document ingestion: PDF text, order segmentation, and field extraction."""
from ro_intake.ingestion.fields import FIELD_RULES, extract_field, extract_fields
from ro_intake.ingestion.segmenter import DocumentSegment, detect_segments, is_header_page, split_document
from ro_intake.ingestion.text import extract_page_texts, extract_text, page_count

__all__ = [
    "FIELD_RULES",
    "DocumentSegment",
    "detect_segments",
    "extract_field",
    "extract_fields",
    "extract_page_texts",
    "extract_text",
    "is_header_page",
    "page_count",
    "split_document",
]
