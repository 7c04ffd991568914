"""Repair-order PDF intake: segment, extract, resolve, and persist."""
from ro_intake.core import (
    CustomerDirectoryEntry,
    DirectorySnapshot,
    ExtractedFields,
    RepairOrderRecord,
    Settings,
    VehicleDirectoryEntry,
    configure_logging,
)
from ro_intake.ingestion import (
    detect_segments,
    extract_fields,
    extract_text,
    split_document,
)
from ro_intake.processing import (
    BatchUpload,
    InvalidTransition,
    MatchClassification,
    Resolution,
    UploadItem,
    UploadStatus,
    analyze_submission,
    build_services,
    reconcile_shop_orphans,
    resolve,
)
from ro_intake.review import (
    apply_edits,
    items_to_rows,
    select_match,
    store_for_later,
)

__all__ = [
    "BatchUpload",
    "CustomerDirectoryEntry",
    "DirectorySnapshot",
    "ExtractedFields",
    "InvalidTransition",
    "MatchClassification",
    "RepairOrderRecord",
    "Resolution",
    "Settings",
    "UploadItem",
    "UploadStatus",
    "VehicleDirectoryEntry",
    "analyze_submission",
    "apply_edits",
    "build_services",
    "configure_logging",
    "detect_segments",
    "extract_fields",
    "extract_text",
    "items_to_rows",
    "reconcile_shop_orphans",
    "resolve",
    "select_match",
    "split_document",
    "store_for_later",
]
