"""Interfaces for the externally owned directory, object store, and record table."""
from __future__ import annotations

from typing import Any, Dict, Protocol

from ro_intake.core.models import DirectorySnapshot, RepairOrderRecord


class Directory(Protocol):
    def fetch_snapshot(self, shop_id: str) -> DirectorySnapshot:
        """Return the shop's customers and vehicles as one immutable snapshot."""


class ObjectStore(Protocol):
    def write(self, shop_id: str, filename: str, data: bytes) -> str:
        """Store bytes under the shop's prefix and return a public URL."""

    def read(self, url: str) -> bytes:
        """Fetch previously stored bytes back by URL."""


class RecordSink(Protocol):
    def insert(self, record: RepairOrderRecord) -> Dict[str, Any]:
        """Persist one repair-order row and return the stored representation."""
