"""Supabase REST and Storage collaborators built on ``requests``."""
from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests

from ro_intake.core.config import Settings
from ro_intake.core.models import (
    CustomerDirectoryEntry,
    DirectorySnapshot,
    RepairOrderRecord,
    VehicleDirectoryEntry,
)

logger = logging.getLogger(__name__)

CUSTOMER_COLUMNS = "id,full_name,phone,email"
VEHICLE_COLUMNS = "id,customer_id,vin,license_plate,year,make,model"


class SupabaseClient:
    """Directory, object store, and record sink for one Supabase project.

    Every request carries the service-role key and a timeout; non-2xx
    responses raise ``requests.HTTPError`` so the orchestrator can scope the
    failure to the item being processed.
    """

    def __init__(self, settings: Settings, session: Optional[requests.Session] = None) -> None:
        self.settings = settings
        self.base_url = settings.supabase_url.rstrip("/")
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "apikey": settings.service_role_key,
                "Authorization": f"Bearer {settings.service_role_key}",
            }
        )

    # Directory

    def _select(self, table: str, columns: str, **filters: str) -> List[Dict[str, Any]]:
        params = {"select": columns, **{key: f"eq.{value}" for key, value in filters.items()}}
        response = self.session.get(
            f"{self.base_url}/rest/v1/{table}",
            params=params,
            timeout=self.settings.http_timeout,
        )
        response.raise_for_status()
        return response.json()

    def fetch_snapshot(self, shop_id: str) -> DirectorySnapshot:
        customers = self._select("customers", CUSTOMER_COLUMNS, shop_id=shop_id)
        vehicles = self._select("vehicles", VEHICLE_COLUMNS, shop_id=shop_id)
        logger.info(
            "Loaded directory for shop %s: %d customers, %d vehicles",
            shop_id,
            len(customers),
            len(vehicles),
        )
        return DirectorySnapshot(
            customers=tuple(
                CustomerDirectoryEntry(
                    id=str(row["id"]),
                    full_name=row.get("full_name"),
                    phone=row.get("phone"),
                    email=row.get("email"),
                )
                for row in customers
            ),
            vehicles=tuple(
                VehicleDirectoryEntry(
                    id=str(row["id"]),
                    customer_id=str(row["customer_id"]),
                    vin=row.get("vin"),
                    license_plate=row.get("license_plate"),
                    year=row.get("year"),
                    make=row.get("make"),
                    model=row.get("model"),
                )
                for row in vehicles
            ),
        )

    # Object store

    def _object_path(self, shop_id: str, filename: str) -> str:
        return f"{shop_id}/{int(time.time() * 1000)}-{filename}"

    def public_url(self, path: str) -> str:
        return f"{self.base_url}/storage/v1/object/public/{self.settings.storage_bucket}/{quote(path)}"

    def write(self, shop_id: str, filename: str, data: bytes) -> str:
        path = self._object_path(shop_id, filename)
        response = self.session.post(
            f"{self.base_url}/storage/v1/object/{self.settings.storage_bucket}/{quote(path)}",
            data=data,
            headers={"Content-Type": "application/pdf", "Cache-Control": "max-age=3600", "x-upsert": "false"},
            timeout=self.settings.http_timeout,
        )
        response.raise_for_status()
        logger.debug("Stored %s (%d bytes)", path, len(data))
        return self.public_url(path)

    def read(self, url: str) -> bytes:
        response = self.session.get(url, timeout=self.settings.http_timeout)
        response.raise_for_status()
        return response.content

    # Repair-order records

    def insert(self, record: RepairOrderRecord) -> Dict[str, Any]:
        response = self.session.post(
            f"{self.base_url}/rest/v1/{self.settings.records_table}",
            json=record.to_dict(),
            headers={"Prefer": "return=representation"},
            timeout=self.settings.http_timeout,
        )
        response.raise_for_status()
        rows = response.json()
        return rows[0] if isinstance(rows, list) and rows else rows

    def fetch_orphans(self, shop_id: str) -> List[RepairOrderRecord]:
        rows = self._select(self.settings.records_table, "*", shop_id=shop_id, is_matched="false")
        return [RepairOrderRecord.from_dict(row) for row in rows]

    def update(self, record_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        response = self.session.patch(
            f"{self.base_url}/rest/v1/{self.settings.records_table}",
            params={"id": f"eq.{record_id}"},
            json=changes,
            headers={"Prefer": "return=representation"},
            timeout=self.settings.http_timeout,
        )
        response.raise_for_status()
        rows = response.json()
        return rows[0] if isinstance(rows, list) and rows else rows
