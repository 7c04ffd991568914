"""Resolution, batch orchestration, and reconciliation of repair orders."""
from ro_intake.processing.items import InvalidTransition, UploadItem, UploadStatus
from ro_intake.processing.resolver import MatchClassification, Resolution, resolve
from ro_intake.processing.orchestrator import BatchUpload, analyze_item, build_record
from ro_intake.processing.pipeline import analyze_submission, build_services, start_batch
from ro_intake.processing.reconcile import reconcile_orphans, reconcile_shop_orphans

__all__ = [
    "BatchUpload",
    "InvalidTransition",
    "MatchClassification",
    "Resolution",
    "UploadItem",
    "UploadStatus",
    "analyze_item",
    "analyze_submission",
    "build_record",
    "build_services",
    "reconcile_orphans",
    "reconcile_shop_orphans",
    "resolve",
    "start_batch",
]
