"""Operator corrections applied to upload items before they are persisted."""
from __future__ import annotations

from dataclasses import fields as dataclass_fields, replace
from typing import Any, Dict, Iterable, List, Optional

from ro_intake.core.models import ExtractedFields
from ro_intake.processing.items import InvalidTransition, UploadItem

EDITABLE_FIELDS = frozenset(f.name for f in dataclass_fields(ExtractedFields))


def _ensure_reviewable(item: UploadItem) -> None:
    if not item.is_reviewable:
        raise InvalidTransition(
            f"{item.filename}: corrections are only allowed before upload (status is {item.status.value})"
        )


def select_match(item: UploadItem, customer_id: str, vehicle_id: Optional[str] = None) -> UploadItem:
    """Pin the item to an operator-chosen customer, overriding the cascade."""

    _ensure_reviewable(item)
    if not customer_id:
        raise ValueError("customer_id is required for a manual match")
    item.selected_customer_id = customer_id
    item.selected_vehicle_id = vehicle_id
    item.store_for_later = False
    return item


def store_for_later(item: UploadItem) -> UploadItem:
    """Persist the item as an orphan even if the cascade found a customer."""

    _ensure_reviewable(item)
    item.selected_customer_id = None
    item.selected_vehicle_id = None
    item.store_for_later = True
    return item


def clear_selection(item: UploadItem) -> UploadItem:
    """Fall back to whatever the cascade resolved."""

    _ensure_reviewable(item)
    item.selected_customer_id = None
    item.selected_vehicle_id = None
    item.store_for_later = False
    return item


def apply_edits(item: UploadItem, updates: Dict[str, Any]) -> UploadItem:
    """Correct extracted values; only fields explicitly provided are overwritten."""

    _ensure_reviewable(item)
    unknown = set(updates) - EDITABLE_FIELDS
    if unknown:
        raise ValueError(f"Unknown repair-order fields: {', '.join(sorted(unknown))}")
    updated_fields = {key: value for key, value in updates.items() if value is not None}
    item.fields = replace(item.fields, **updated_fields)
    return item


def items_to_rows(items: Iterable[UploadItem]) -> List[Dict[str, Any]]:
    """Flatten items for tabular review and summary exports."""

    def _sanitize(value: Any) -> Any:
        if isinstance(value, str):
            return " ".join(value.split())
        return value

    rows = []
    for item in items:
        row: Dict[str, Any] = {
            "filename": item.filename,
            "status": item.status.value,
            "pages": f"{item.page_range[0] + 1}-{item.page_range[1] + 1}" if item.page_range else "",
            "customer_id": item.customer_id,
            "vehicle_id": item.vehicle_id,
            "matched_by": "operator" if item.selected_customer_id else item.resolution.matched_by,
            "store_for_later": item.store_for_later,
            "file_url": item.file_url,
            "error": item.error,
        }
        row.update(item.fields.to_dict())
        rows.append({key: _sanitize(value) for key, value in row.items()})
    return rows
