"""Pytest configuration to make the local package importable without installation."""
import sys
from pathlib import Path
from typing import List, Sequence

import pytest

# Ensure repository root is on sys.path for module resolution
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from ro_intake.core.models import CustomerDirectoryEntry, VehicleDirectoryEntry
from ro_intake.storage.memory import MemoryDirectory, MemoryObjectStore, MemoryRecordSink

SHOP_ID = "shop-1"


def _escape(line: str) -> str:
    return line.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")


def make_pdf(pages: Sequence[Sequence[str]]) -> bytes:
    """Build a small text PDF with one Helvetica line per string on each page."""

    objects: List[bytes] = []
    page_ids = [4 + 2 * index for index in range(len(pages))]
    kids = " ".join(f"{page_id} 0 R" for page_id in page_ids)

    objects.append(b"<< /Type /Catalog /Pages 2 0 R >>")
    objects.append(f"<< /Type /Pages /Kids [{kids}] /Count {len(pages)} >>".encode("latin-1"))
    objects.append(b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica /Encoding /WinAnsiEncoding >>")
    for page_id, lines in zip(page_ids, pages):
        commands = ["BT", "/F1 11 Tf", "72 740 Td"]
        for position, line in enumerate(lines):
            if position:
                commands.append("0 -16 Td")
            commands.append(f"({_escape(line)}) Tj")
        commands.append("ET")
        stream = "\n".join(commands).encode("latin-1")
        objects.append(
            (
                "<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
                f"/Resources << /Font << /F1 3 0 R >> >> /Contents {page_id + 1} 0 R >>"
            ).encode("latin-1")
        )
        objects.append(b"<< /Length %d >>\nstream\n" % len(stream) + stream + b"\nendstream")

    output = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(output))
        output += b"%d 0 obj\n" % number + body + b"\nendobj\n"

    xref_offset = len(output)
    output += b"xref\n0 %d\n" % (len(objects) + 1)
    output += b"0000000000 65535 f \n"
    for offset in offsets:
        output += b"%010d 00000 n \n" % offset
    output += b"trailer\n<< /Size %d /Root 1 0 R >>\nstartxref\n%d\n%%%%EOF\n" % (len(objects) + 1, xref_offset)
    return bytes(output)


def order_page(
    ro_number: int,
    name: str = "John Smith",
    phone: str = "(555) 123-4567",
    email: str = "john.smith@example.com",
    total: str = "$1,000.00",
) -> List[str]:
    """Lines for the first page of a typical repair order."""

    return [
        f"REPAIR ORDER RO# {ro_number}",
        f"Customer: {name}",
        f"Phone: {phone}",
        f"Email: {email}",
        "Date: 03/12/2024",
        f"Total: {total}",
    ]


@pytest.fixture
def directory() -> MemoryDirectory:
    """Three customers and three vehicles for the test shop."""

    directory = MemoryDirectory()
    directory.add_customer(
        SHOP_ID, CustomerDirectoryEntry("c1", "John Smith", "555-123-4567", "john.smith@example.com")
    )
    directory.add_customer(SHOP_ID, CustomerDirectoryEntry("c2", "Jane Doe", "(555) 987-6543", "jane@example.com"))
    directory.add_customer(SHOP_ID, CustomerDirectoryEntry("c3", "Robert Brown"))
    directory.add_vehicle(
        SHOP_ID, VehicleDirectoryEntry("v1", "c1", "1HGCM82633A004352", "ABC-1234", 2019, "Honda", "Civic")
    )
    directory.add_vehicle(
        SHOP_ID, VehicleDirectoryEntry("v2", "c2", "2T1BURHE0JC123456", "8XYZ 123", 2018, "Toyota", "Corolla")
    )
    directory.add_vehicle(SHOP_ID, VehicleDirectoryEntry("v3", "c2", None, "JD-2020", 2020, "Ford", "F-150"))
    return directory


@pytest.fixture
def snapshot(directory: MemoryDirectory):
    return directory.fetch_snapshot(SHOP_ID)


@pytest.fixture
def store() -> MemoryObjectStore:
    return MemoryObjectStore()


@pytest.fixture
def records() -> MemoryRecordSink:
    return MemoryRecordSink()
