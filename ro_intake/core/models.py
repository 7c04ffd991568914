"""Data models shared by the repair-order ingestion pipeline."""
from dataclasses import dataclass, asdict, field, fields
from typing import Optional, Dict, Any, Tuple


@dataclass
class ExtractedFields:
    """Best-effort fields parsed from one repair-order segment.

    Every attribute is optional; an empty instance is the normal result for a
    page without extractable text.
    """

    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    customer_email: Optional[str] = None
    vin: Optional[str] = None
    vehicle_year: Optional[int] = None
    vehicle_make: Optional[str] = None
    vehicle_model: Optional[str] = None
    license_plate: Optional[str] = None
    service_date: Optional[str] = None
    total_amount: Optional[float] = None
    parts_cost: Optional[float] = None
    labor_cost: Optional[float] = None
    service_writer: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Return only the populated fields."""

        return {key: value for key, value in asdict(self).items() if value is not None}

    def is_empty(self) -> bool:
        return not self.to_dict()


@dataclass(frozen=True)
class CustomerDirectoryEntry:
    """A shop customer as seen by the resolver."""

    id: str
    full_name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None


@dataclass(frozen=True)
class VehicleDirectoryEntry:
    """A vehicle owned by a directory customer."""

    id: str
    customer_id: str
    vin: Optional[str] = None
    license_plate: Optional[str] = None
    year: Optional[int] = None
    make: Optional[str] = None
    model: Optional[str] = None


@dataclass(frozen=True)
class DirectorySnapshot:
    """Read-once view of a shop's customers and vehicles for one batch."""

    customers: Tuple[CustomerDirectoryEntry, ...] = ()
    vehicles: Tuple[VehicleDirectoryEntry, ...] = ()

    def customer(self, customer_id: str) -> Optional[CustomerDirectoryEntry]:
        return next((entry for entry in self.customers if entry.id == customer_id), None)

    def vehicles_for(self, customer_id: str) -> Tuple[VehicleDirectoryEntry, ...]:
        return tuple(vehicle for vehicle in self.vehicles if vehicle.customer_id == customer_id)


# ExtractedFields attribute -> RepairOrderRecord orphan column
TEMP_FIELD_MAP = {
    "customer_name": "temp_customer_name",
    "customer_phone": "temp_customer_phone",
    "customer_email": "temp_customer_email",
    "vin": "temp_vin",
    "vehicle_year": "temp_vehicle_year",
    "vehicle_make": "temp_vehicle_make",
    "vehicle_model": "temp_vehicle_model",
    "license_plate": "temp_license_plate",
    "service_writer": "temp_service_writer",
}


@dataclass
class RepairOrderRecord:
    """Row persisted for every uploaded segment, matched or orphaned."""

    shop_id: str
    file_url: str
    customer_id: Optional[str] = None
    vehicle_id: Optional[str] = None
    service_date: Optional[str] = None
    total_amount: Optional[float] = None
    parts_cost: Optional[float] = None
    labor_cost: Optional[float] = None
    is_matched: bool = False
    temp_customer_name: Optional[str] = None
    temp_customer_phone: Optional[str] = None
    temp_customer_email: Optional[str] = None
    temp_vin: Optional[str] = None
    temp_vehicle_year: Optional[int] = None
    temp_vehicle_make: Optional[str] = None
    temp_vehicle_model: Optional[str] = None
    temp_license_plate: Optional[str] = None
    temp_service_writer: Optional[str] = None
    id: Optional[str] = field(default=None, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        """Return a plain dictionary representation for record inserts."""

        row = asdict(self)
        if row["id"] is None:
            row.pop("id")
        return row

    @classmethod
    def from_dict(cls, row: Dict[str, Any]) -> "RepairOrderRecord":
        """Build a record from a stored row, ignoring unknown columns."""

        known = {f.name for f in fields(cls)}
        return cls(**{key: value for key, value in row.items() if key in known})

    def orphan_fields(self) -> ExtractedFields:
        """Rebuild the extracted identity fields kept on an orphan row."""

        values = {source: getattr(self, target) for source, target in TEMP_FIELD_MAP.items()}
        return ExtractedFields(
            service_date=self.service_date,
            total_amount=self.total_amount,
            parts_cost=self.parts_cost,
            labor_cost=self.labor_cost,
            **values,
        )
