"""Batch state machine that drives uploaded repair orders to persisted records.

An item moves ``pending -> analyzing -> matched|manual -> uploading ->
complete``; any non-terminal state may drop to ``error``. Failures are kept
on the item that caused them so the rest of the batch carries on.
"""
from __future__ import annotations

import logging
from collections import Counter
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ro_intake.core.models import TEMP_FIELD_MAP, DirectorySnapshot, RepairOrderRecord
from ro_intake.ingestion.fields import extract_fields
from ro_intake.ingestion.segmenter import split_document
from ro_intake.ingestion.text import extract_text
from ro_intake.processing.items import (
    REVIEWABLE,
    InvalidTransition,
    UploadItem,
    UploadStatus,
)
from ro_intake.processing.resolver import resolve
from ro_intake.review import workflow
from ro_intake.storage.base import ObjectStore, RecordSink

logger = logging.getLogger(__name__)


def build_record(
    shop_id: str, item: UploadItem, file_url: str, today: Optional[date] = None
) -> RepairOrderRecord:
    """Create the persisted row, copying extracted identity onto orphans."""

    fields = item.fields
    customer_id = item.customer_id
    record = RepairOrderRecord(
        shop_id=shop_id,
        file_url=file_url,
        customer_id=customer_id,
        vehicle_id=item.vehicle_id if customer_id else None,
        service_date=fields.service_date or (today or date.today()).isoformat(),
        total_amount=fields.total_amount,
        parts_cost=fields.parts_cost,
        labor_cost=fields.labor_cost,
        is_matched=customer_id is not None,
    )
    if not record.is_matched:
        for source, target in TEMP_FIELD_MAP.items():
            setattr(record, target, getattr(fields, source))
    return record


def analyze_item(item: UploadItem, snapshot: DirectorySnapshot) -> UploadItem:
    """Extract fields and resolve identity; extraction is pure so retries are safe."""

    item.transition(UploadStatus.ANALYZING)
    try:
        text = item.text if item.text is not None else extract_text(item.content)
        item.fields = extract_fields(text)
        item.resolution = resolve(item.fields, snapshot)
    except Exception as exc:
        logger.exception("Failed to analyze %s", item.filename)
        item.fail(f"analysis failed: {exc}")
        return item

    item.transition(UploadStatus.MATCHED if item.resolution.customer_id else UploadStatus.MANUAL)
    logger.info(
        "Analyzed %s: %d field(s), %s",
        item.filename,
        len(item.fields.to_dict()),
        item.resolution.classification.value,
    )
    return item


class BatchUpload:
    """A shop's batch of uploaded files, processed item by item."""

    def __init__(
        self,
        shop_id: str,
        snapshot: DirectorySnapshot,
        store: ObjectStore,
        records: RecordSink,
        auto_segment: bool = True,
    ) -> None:
        if not shop_id:
            raise ValueError("shop_id is required to start a batch")
        self.shop_id = shop_id
        self.snapshot = snapshot
        self.store = store
        self.records = records
        self.auto_segment = auto_segment
        self.items: List[UploadItem] = []
        self.abandoned = False

    def _ensure_open(self) -> None:
        if self.abandoned:
            raise RuntimeError("This batch was abandoned; start a new one")

    def _item(self, index: int) -> UploadItem:
        try:
            return self.items[index]
        except IndexError:
            raise IndexError(f"No upload item at position {index}") from None

    def _segment_file(self, filename: str, content: bytes) -> List[UploadItem]:
        try:
            segments = split_document(content, filename)
        except Exception as exc:
            logger.exception("Failed to segment %s", filename)
            item = UploadItem(filename=filename, content=content)
            item.fail(f"segmentation failed: {exc}")
            return [item]

        items = []
        for segment in segments:
            item = UploadItem(
                filename=segment.filename,
                content=segment.content,
                text=segment.text,
                page_range=segment.page_range,
            )
            items.append(analyze_item(item, self.snapshot))
        return items

    def add_files(self, files: Iterable[Tuple[str, bytes]]) -> List[UploadItem]:
        """Queue files; with auto-segmentation each order is analyzed right away."""

        self._ensure_open()
        added: List[UploadItem] = []
        for filename, content in files:
            if self.auto_segment:
                added.extend(self._segment_file(filename, content))
            else:
                added.append(UploadItem(filename=filename, content=content))

        self.items.extend(added)
        logger.info("Added %d item(s) to batch for shop %s", len(added), self.shop_id)
        return added

    def analyze_pending(self) -> List[UploadItem]:
        pending = [item for item in self.items if item.status == UploadStatus.PENDING]
        return [analyze_item(item, self.snapshot) for item in pending]

    def select_customer(self, index: int, customer_id: str, vehicle_id: Optional[str] = None) -> UploadItem:
        item = self._item(index)
        workflow.select_match(item, customer_id, vehicle_id)
        return item

    def store_for_later(self, index: int) -> UploadItem:
        item = self._item(index)
        workflow.store_for_later(item)
        return item

    def edit_fields(self, index: int, updates: Dict[str, Any]) -> UploadItem:
        item = self._item(index)
        workflow.apply_edits(item, updates)
        return item

    def _persist(self, item: UploadItem) -> None:
        item.transition(UploadStatus.UPLOADING)
        try:
            item.file_url = self.store.write(self.shop_id, item.filename, item.content)
            record = build_record(self.shop_id, item, item.file_url)
            item.record = self.records.insert(record)
        except Exception as exc:
            logger.exception("Failed to upload %s", item.filename)
            item.fail(str(exc))
            return
        item.transition(UploadStatus.COMPLETE)

    def upload(self) -> Dict[str, int]:
        """Persist every reviewed item; one failure never stops its siblings."""

        self._ensure_open()
        for item in self.items:
            if item.status in REVIEWABLE:
                self._persist(item)
        summary = self.counts()
        logger.info("Batch upload for shop %s finished: %s", self.shop_id, summary)
        return summary

    def retry(self, index: int) -> UploadItem:
        """Swap an errored item for a fresh copy and analyze it again.

        A file that never got past segmentation is split again, so it may come
        back as several items; the first of them is returned.
        """

        self._ensure_open()
        failed = self._item(index)
        if failed.status != UploadStatus.ERROR:
            raise InvalidTransition(f"{failed.filename}: only errored items can be retried")

        if failed.text is None and self.auto_segment:
            fresh_items = self._segment_file(failed.filename, failed.content)
            self.items[index : index + 1] = fresh_items
            logger.info("Retried %s as %d item(s)", failed.filename, len(fresh_items))
            return fresh_items[0]

        fresh = UploadItem(
            filename=failed.filename,
            content=failed.content,
            text=failed.text,
            page_range=failed.page_range,
        )
        analyze_item(fresh, self.snapshot)
        if fresh.status in REVIEWABLE:
            if not failed.fields.is_empty():
                fresh.fields = failed.fields
            fresh.selected_customer_id = failed.selected_customer_id
            fresh.selected_vehicle_id = failed.selected_vehicle_id
            fresh.store_for_later = failed.store_for_later
        self.items[index] = fresh
        return fresh

    def remove(self, index: int) -> UploadItem:
        item = self._item(index)
        if item.status == UploadStatus.UPLOADING:
            raise InvalidTransition(f"{item.filename}: cannot remove an item while it uploads")
        return self.items.pop(index)

    def abandon(self) -> List[UploadItem]:
        """Drop everything not yet persisted; completed items stay as they are."""

        if any(item.status == UploadStatus.UPLOADING for item in self.items):
            raise InvalidTransition("Cannot abandon a batch while items are uploading")
        dropped = [item for item in self.items if item.status != UploadStatus.COMPLETE]
        self.items = [item for item in self.items if item.status == UploadStatus.COMPLETE]
        self.abandoned = True
        logger.info("Abandoned batch for shop %s, dropped %d item(s)", self.shop_id, len(dropped))
        return dropped

    def counts(self) -> Dict[str, int]:
        return dict(Counter(item.status.value for item in self.items))

    @property
    def has_errors(self) -> bool:
        return any(item.status == UploadStatus.ERROR for item in self.items)

    @property
    def is_done(self) -> bool:
        return bool(self.items) and all(item.status == UploadStatus.COMPLETE for item in self.items)
