"""Core building blocks for the ro_intake package."""
from ro_intake.core.config import Settings
from ro_intake.core.logging import configure_logging
from ro_intake.core.models import (
    CustomerDirectoryEntry,
    DirectorySnapshot,
    ExtractedFields,
    RepairOrderRecord,
    VehicleDirectoryEntry,
)

__all__ = [
    "configure_logging",
    "CustomerDirectoryEntry",
    "DirectorySnapshot",
    "ExtractedFields",
    "RepairOrderRecord",
    "Settings",
    "VehicleDirectoryEntry",
]
