"""Batch summary exports."""
from ro_intake.reporting.sinks import SUMMARY_HEADERS, batch_to_rows, excel_bytes, write_csv, write_excel

__all__ = ["SUMMARY_HEADERS", "batch_to_rows", "excel_bytes", "write_csv", "write_excel"]
