"""Upload item state and the transitions it may take."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional, Tuple

from ro_intake.core.models import ExtractedFields
from ro_intake.processing.resolver import UNRESOLVED, Resolution


class UploadStatus(str, Enum):
    PENDING = "pending"
    ANALYZING = "analyzing"
    MATCHED = "matched"
    MANUAL = "manual"
    UPLOADING = "uploading"
    COMPLETE = "complete"
    ERROR = "error"


TRANSITIONS: Dict[UploadStatus, FrozenSet[UploadStatus]] = {
    UploadStatus.PENDING: frozenset({UploadStatus.ANALYZING, UploadStatus.ERROR}),
    UploadStatus.ANALYZING: frozenset({UploadStatus.MATCHED, UploadStatus.MANUAL, UploadStatus.ERROR}),
    UploadStatus.MATCHED: frozenset({UploadStatus.UPLOADING, UploadStatus.ERROR}),
    UploadStatus.MANUAL: frozenset({UploadStatus.UPLOADING, UploadStatus.ERROR}),
    UploadStatus.UPLOADING: frozenset({UploadStatus.COMPLETE, UploadStatus.ERROR}),
    UploadStatus.COMPLETE: frozenset(),
    UploadStatus.ERROR: frozenset(),
}

# states where an operator may still correct the item
REVIEWABLE = frozenset({UploadStatus.MATCHED, UploadStatus.MANUAL})


class InvalidTransition(ValueError):
    """Raised when an item is asked to move along an edge the table lacks."""


@dataclass
class UploadItem:
    """In-memory pipeline state for one repair-order candidate."""

    filename: str
    content: bytes
    status: UploadStatus = UploadStatus.PENDING
    text: Optional[str] = None
    page_range: Optional[Tuple[int, int]] = None
    fields: ExtractedFields = field(default_factory=ExtractedFields)
    resolution: Resolution = UNRESOLVED
    selected_customer_id: Optional[str] = None
    selected_vehicle_id: Optional[str] = None
    store_for_later: bool = False
    file_url: Optional[str] = None
    record: Optional[Dict[str, Any]] = None
    error: Optional[str] = None

    def transition(self, status: UploadStatus) -> None:
        if status not in TRANSITIONS[self.status]:
            raise InvalidTransition(f"{self.filename}: cannot move from {self.status.value} to {status.value}")
        self.status = status

    def fail(self, message: str) -> None:
        self.transition(UploadStatus.ERROR)
        self.error = message

    @property
    def is_terminal(self) -> bool:
        return not TRANSITIONS[self.status]

    @property
    def is_reviewable(self) -> bool:
        return self.status in REVIEWABLE

    @property
    def customer_id(self) -> Optional[str]:
        """Operator choice first, then the cascade result."""

        if self.store_for_later:
            return None
        if self.selected_customer_id:
            return self.selected_customer_id
        return self.resolution.customer_id

    @property
    def vehicle_id(self) -> Optional[str]:
        if self.store_for_later:
            return None
        if self.selected_customer_id:
            return self.selected_vehicle_id
        return self.resolution.vehicle_id
