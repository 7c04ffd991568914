"""Match extracted repair-order fields to a shop's customers and vehicles."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, List, Optional, Tuple

from ro_intake.core.models import (
    CustomerDirectoryEntry,
    DirectorySnapshot,
    ExtractedFields,
    VehicleDirectoryEntry,
)
from ro_intake.ingestion.common import is_valid_phone, is_valid_vin, normalize_phone

logger = logging.getLogger(__name__)


class MatchClassification(str, Enum):
    AUTO_MATCHED = "auto_matched"
    NEEDS_MANUAL_REVIEW = "needs_manual_review"


@dataclass(frozen=True)
class Resolution:
    customer_id: Optional[str] = None
    vehicle_id: Optional[str] = None
    matched_by: Optional[str] = None
    vehicle_matched_by: Optional[str] = None

    @property
    def classification(self) -> MatchClassification:
        if self.customer_id:
            return MatchClassification.AUTO_MATCHED
        return MatchClassification.NEEDS_MANUAL_REVIEW


UNRESOLVED = Resolution()


def _fold(value: Optional[str]) -> str:
    return (value or "").strip().casefold()


def _by_vin(fields: ExtractedFields, snapshot: DirectorySnapshot) -> Optional[str]:
    if not is_valid_vin(fields.vin):
        return None
    for vehicle in snapshot.vehicles:
        if (vehicle.vin or "").upper() == fields.vin:
            return vehicle.customer_id
    return None


def _by_phone(fields: ExtractedFields, snapshot: DirectorySnapshot) -> Optional[str]:
    phone = normalize_phone(fields.customer_phone or "")
    if not is_valid_phone(phone):
        return None
    return _first_customer(snapshot.customers, lambda c: normalize_phone(c.phone or "") == phone)


def _by_email(fields: ExtractedFields, snapshot: DirectorySnapshot) -> Optional[str]:
    email = _fold(fields.customer_email)
    if not email:
        return None
    return _first_customer(snapshot.customers, lambda c: _fold(c.email) == email)


def _by_name(fields: ExtractedFields, snapshot: DirectorySnapshot) -> Optional[str]:
    name = _fold(fields.customer_name)
    if not name:
        return None

    def contains(customer: CustomerDirectoryEntry) -> bool:
        full_name = _fold(customer.full_name)
        return bool(full_name) and (name in full_name or full_name in name)

    return _first_customer(snapshot.customers, contains)


def _first_customer(
    customers: Iterable[CustomerDirectoryEntry], predicate: Callable[[CustomerDirectoryEntry], bool]
) -> Optional[str]:
    return next((customer.id for customer in customers if predicate(customer)), None)


CUSTOMER_CASCADE: List[Tuple[str, Callable[[ExtractedFields, DirectorySnapshot], Optional[str]]]] = [
    ("vin", _by_vin),
    ("phone", _by_phone),
    ("email", _by_email),
    ("name", _by_name),
]


def _vehicle_by_vin(fields: ExtractedFields, vehicle: VehicleDirectoryEntry) -> bool:
    return is_valid_vin(fields.vin) and (vehicle.vin or "").upper() == fields.vin


def _vehicle_by_plate(fields: ExtractedFields, vehicle: VehicleDirectoryEntry) -> bool:
    plate = _fold(fields.license_plate).replace(" ", "")
    return bool(plate) and _fold(vehicle.license_plate).replace(" ", "") == plate


def _vehicle_by_description(fields: ExtractedFields, vehicle: VehicleDirectoryEntry) -> bool:
    if not (fields.vehicle_year and fields.vehicle_make and fields.vehicle_model):
        return False
    if vehicle.year != fields.vehicle_year or _fold(vehicle.make) != _fold(fields.vehicle_make):
        return False
    model, known_model = _fold(fields.vehicle_model), _fold(vehicle.model)
    return bool(known_model) and (model in known_model or known_model in model)


VEHICLE_CASCADE: List[Tuple[str, Callable[[ExtractedFields, VehicleDirectoryEntry], bool]]] = [
    ("vin", _vehicle_by_vin),
    ("plate", _vehicle_by_plate),
    ("description", _vehicle_by_description),
]


def resolve_customer(fields: ExtractedFields, snapshot: DirectorySnapshot) -> Tuple[Optional[str], Optional[str]]:
    """Return ``(customer_id, strategy)`` for the first cascade step that matches."""

    for strategy, matcher in CUSTOMER_CASCADE:
        customer_id = matcher(fields, snapshot)
        if customer_id:
            return customer_id, strategy
    return None, None


def resolve_vehicle(
    fields: ExtractedFields, snapshot: DirectorySnapshot, customer_id: str
) -> Tuple[Optional[str], Optional[str]]:
    """Search only the resolved customer's vehicles."""

    candidates = snapshot.vehicles_for(customer_id)
    for strategy, matcher in VEHICLE_CASCADE:
        for vehicle in candidates:
            if matcher(fields, vehicle):
                return vehicle.id, strategy
    return None, None


def resolve(fields: ExtractedFields, snapshot: DirectorySnapshot) -> Resolution:
    """Run the customer cascade, then the vehicle cascade for the matched customer."""

    customer_id, matched_by = resolve_customer(fields, snapshot)
    if not customer_id:
        logger.debug("No directory customer matched the extracted fields")
        return UNRESOLVED

    vehicle_id, vehicle_matched_by = resolve_vehicle(fields, snapshot, customer_id)
    logger.debug(
        "Resolved customer %s by %s (vehicle %s by %s)",
        customer_id,
        matched_by,
        vehicle_id,
        vehicle_matched_by,
    )
    return Resolution(
        customer_id=customer_id,
        vehicle_id=vehicle_id,
        matched_by=matched_by,
        vehicle_matched_by=vehicle_matched_by,
    )
