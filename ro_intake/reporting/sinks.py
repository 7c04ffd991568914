"""Helper sinks for exporting a batch summary to CSV or Excel."""
from io import BytesIO
from pathlib import Path
from typing import Any, Dict, Iterable, List

from ro_intake.processing.items import UploadItem
from ro_intake.review.workflow import items_to_rows

SUMMARY_HEADERS: List[str] = [
    "filename",
    "status",
    "pages",
    "customer_id",
    "vehicle_id",
    "matched_by",
    "store_for_later",
    "file_url",
    "error",
    "customer_name",
    "customer_phone",
    "customer_email",
    "vin",
    "vehicle_year",
    "vehicle_make",
    "vehicle_model",
    "license_plate",
    "service_date",
    "total_amount",
    "parts_cost",
    "labor_cost",
    "service_writer",
]


def ensure_output_dir(output_path: Path) -> None:
    """Create parent folders for sink outputs when missing."""

    output_path.parent.mkdir(parents=True, exist_ok=True)


def batch_to_rows(items: Iterable[UploadItem]) -> List[Dict[str, Any]]:
    """Return one row per item with every summary column present."""

    return [{header: row.get(header, "") for header in SUMMARY_HEADERS} for row in items_to_rows(items)]


def _workbook(rows: List[Dict[str, Any]]):
    from openpyxl import Workbook

    workbook = Workbook()
    sheet = workbook.active
    sheet.title = "repair_orders"
    sheet.append(SUMMARY_HEADERS)
    for row in rows:
        sheet.append([row.get(header, "") for header in SUMMARY_HEADERS])
    return workbook


def write_excel(rows: Iterable[Dict[str, Any]], output_path: Path) -> None:
    """Write rows to an Excel workbook using openpyxl."""

    rows = list(rows)
    if not rows:
        return

    ensure_output_dir(output_path)
    _workbook(rows).save(output_path)


def excel_bytes(rows: Iterable[Dict[str, Any]]) -> bytes:
    """Render rows as an in-memory workbook for browser downloads."""

    buffer = BytesIO()
    _workbook(list(rows)).save(buffer)
    return buffer.getvalue()


def write_csv(rows: Iterable[Dict[str, Any]], output_path: Path) -> None:
    """Write summary rows to a CSV file with consistent headers."""

    rows = list(rows)
    ensure_output_dir(output_path)
    if not rows:
        return

    import csv

    with output_path.open("w", newline="", encoding="utf-8") as csvfile:
        writer = csv.DictWriter(csvfile, fieldnames=SUMMARY_HEADERS, extrasaction="ignore")
        writer.writeheader()
        writer.writerows(rows)
