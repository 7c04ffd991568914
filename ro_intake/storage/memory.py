"""In-process collaborators for local runs and tests."""
from __future__ import annotations

import uuid
from dataclasses import replace
from typing import Any, Dict, Iterable, List, Optional

from ro_intake.core.models import (
    CustomerDirectoryEntry,
    DirectorySnapshot,
    RepairOrderRecord,
    VehicleDirectoryEntry,
)


class MemoryDirectory:
    """Directory backed by plain lists, keyed by shop id."""

    def __init__(self) -> None:
        self._customers: Dict[str, List[CustomerDirectoryEntry]] = {}
        self._vehicles: Dict[str, List[VehicleDirectoryEntry]] = {}

    def add_customer(self, shop_id: str, customer: CustomerDirectoryEntry) -> None:
        self._customers.setdefault(shop_id, []).append(customer)

    def add_vehicle(self, shop_id: str, vehicle: VehicleDirectoryEntry) -> None:
        self._vehicles.setdefault(shop_id, []).append(vehicle)

    def fetch_snapshot(self, shop_id: str) -> DirectorySnapshot:
        return DirectorySnapshot(
            customers=tuple(self._customers.get(shop_id, [])),
            vehicles=tuple(self._vehicles.get(shop_id, [])),
        )


class MemoryObjectStore:
    """Keeps uploaded files in a dict and hands out memory:// URLs."""

    def __init__(self) -> None:
        self.objects: Dict[str, bytes] = {}

    def write(self, shop_id: str, filename: str, data: bytes) -> str:
        url = f"memory://{shop_id}/{uuid.uuid4().hex}_{filename}"
        self.objects[url] = data
        return url

    def read(self, url: str) -> bytes:
        try:
            return self.objects[url]
        except KeyError:
            raise FileNotFoundError(url) from None


class MemoryRecordSink:
    """Stores inserted repair-order rows with generated ids."""

    def __init__(self, records: Optional[Iterable[RepairOrderRecord]] = None) -> None:
        self.records: List[RepairOrderRecord] = list(records or [])

    def insert(self, record: RepairOrderRecord) -> Dict[str, Any]:
        stored = replace(record, id=record.id or uuid.uuid4().hex)
        self.records.append(stored)
        return stored.to_dict()

    def fetch_orphans(self, shop_id: str) -> List[RepairOrderRecord]:
        return [r for r in self.records if r.shop_id == shop_id and not r.is_matched]

    def update(self, record_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        for index, record in enumerate(self.records):
            if record.id == record_id:
                self.records[index] = replace(record, **changes)
                return self.records[index].to_dict()
        raise KeyError(record_id)
