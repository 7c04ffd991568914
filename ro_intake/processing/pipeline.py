"""Entry point that turns an uploaded PDF batch into repair-order records."""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ro_intake.core.config import Settings
from ro_intake.processing.items import UploadStatus
from ro_intake.processing.orchestrator import BatchUpload
from ro_intake.storage.base import Directory, ObjectStore, RecordSink
from ro_intake.storage.supabase import SupabaseClient

logger = logging.getLogger(__name__)


def _validate_submission(files: Iterable[Tuple[str, bytes]], shop_id: Optional[str]) -> List[Tuple[str, bytes]]:
    """Reject incomplete submissions before anything is read or stored."""

    if not shop_id:
        raise ValueError("Missing shop_id")
    submitted = list(files or [])
    if not submitted:
        raise ValueError("Missing file")
    for filename, content in submitted:
        if not content:
            raise ValueError(f"Missing file content for {filename or 'unnamed upload'}")
    return submitted


def build_services(settings: Optional[Settings] = None) -> Tuple[Directory, ObjectStore, RecordSink]:
    """Wire the Supabase-backed directory, object store, and record sink."""

    client = SupabaseClient(settings or Settings.from_env())
    return client, client, client


def start_batch(
    shop_id: str,
    directory: Directory,
    store: ObjectStore,
    records: RecordSink,
    auto_segment: bool = True,
) -> BatchUpload:
    """Read the shop's directory once and open a batch against that snapshot."""

    snapshot = directory.fetch_snapshot(shop_id)
    return BatchUpload(shop_id, snapshot, store, records, auto_segment=auto_segment)


def submission_response(batch: BatchUpload) -> Dict[str, Any]:
    completed = [item for item in batch.items if item.status == UploadStatus.COMPLETE]
    return {
        "success": not batch.has_errors,
        "count": len(completed),
        "results": [
            {
                "file_url": item.file_url,
                "filename": item.filename,
                "is_matched": item.customer_id is not None,
                "analyzed": item.fields.to_dict(),
            }
            for item in completed
        ],
        "errors": [
            {"filename": item.filename, "error": item.error}
            for item in batch.items
            if item.status == UploadStatus.ERROR
        ],
    }


def analyze_submission(
    files: Iterable[Tuple[str, bytes]],
    shop_id: str,
    directory: Directory,
    store: ObjectStore,
    records: RecordSink,
    auto_segment: bool = True,
) -> Dict[str, Any]:
    """Segment, analyze, resolve, and persist every uploaded PDF in one pass."""

    submitted = _validate_submission(files, shop_id)
    logger.info("Submission for shop %s with %d file(s)", shop_id, len(submitted))

    batch = start_batch(shop_id, directory, store, records, auto_segment=auto_segment)
    batch.add_files(submitted)
    if not auto_segment:
        batch.analyze_pending()
    batch.upload()

    response = submission_response(batch)
    if response["errors"]:
        logger.warning("Submission for shop %s finished with %d failed item(s)", shop_id, len(response["errors"]))
        for failure in response["errors"]:
            logger.warning("Failed: %s (%s)", failure["filename"], failure["error"])
    logger.info("Stored %d repair order(s) for shop %s", response["count"], shop_id)
    return response
