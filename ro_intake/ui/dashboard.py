"""Streamlit console to upload, review, and persist a shop's repair orders."""
from pathlib import Path
from typing import Dict, List, Optional

import streamlit as st

# Allow running via "streamlit run ro_intake/ui/dashboard.py" without installing the package
# by ensuring the repository root is on ``sys.path``.
if __package__ in {None, ""}:
    import sys

    sys.path.append(str(Path(__file__).resolve().parents[2]))

from ro_intake.core.config import Settings
from ro_intake.core.logging import configure_logging
from ro_intake.core.models import DirectorySnapshot
from ro_intake.core.utils import get_config_value
from ro_intake.processing.items import UploadItem, UploadStatus
from ro_intake.processing.orchestrator import BatchUpload
from ro_intake.processing.pipeline import build_services, start_batch
from ro_intake.reporting.sinks import batch_to_rows, excel_bytes
from ro_intake.review.workflow import clear_selection

STORE_FOR_LATER = "__store_for_later__"
AUTO_MATCH = "__auto__"

EDITABLE_LABELS = {
    "Customer": "customer_name",
    "Phone": "customer_phone",
    "Email": "customer_email",
    "VIN": "vin",
    "Year": "vehicle_year",
    "Make": "vehicle_make",
    "Model": "vehicle_model",
    "Plate": "license_plate",
    "Service date": "service_date",
    "Total": "total_amount",
    "Parts": "parts_cost",
    "Labor": "labor_cost",
    "Service writer": "service_writer",
}
NUMERIC_FIELDS = {"total_amount", "parts_cost", "labor_cost"}


def _rerun_app() -> None:
    """Trigger a Streamlit rerun, compatible with newer and older APIs."""

    rerun = getattr(st, "rerun", None) or getattr(st, "experimental_rerun", None)
    if not rerun:
        raise RuntimeError("Streamlit does not expose a rerun helper.")
    rerun()


def _status_badge(status: UploadStatus) -> str:
    mapping = {
        UploadStatus.PENDING: "⚪ Pending",
        UploadStatus.ANALYZING: "🔄 Analyzing",
        UploadStatus.MATCHED: "🟢 Matched",
        UploadStatus.MANUAL: "🟠 Needs review",
        UploadStatus.UPLOADING: "⏫ Uploading",
        UploadStatus.COMPLETE: "✅ Complete",
        UploadStatus.ERROR: "🔴 Error",
    }
    return mapping.get(status, status.value)


def _current_batch() -> Optional[BatchUpload]:
    return st.session_state.get("batch")


def _start_batch(settings: Settings, shop_id: str, auto_segment: bool) -> BatchUpload:
    """Open a batch for the shop, reading its directory once."""

    directory, store, records = build_services(settings)
    batch = start_batch(shop_id, directory, store, records, auto_segment=auto_segment)
    st.session_state.batch = batch
    return batch


def _customer_options(snapshot: DirectorySnapshot) -> Dict[str, str]:
    options = {AUTO_MATCH: "Use automatic match", STORE_FOR_LATER: "Store for later (orphan)"}
    for customer in snapshot.customers:
        label = customer.full_name or customer.email or customer.phone or customer.id
        options[customer.id] = f"{label} ({customer.id})"
    return options


def _queue_dashboard(batch: BatchUpload) -> None:
    """Summarize how far the batch has progressed."""

    counts = batch.counts()
    total = len(batch.items)
    complete = counts.get(UploadStatus.COMPLETE.value, 0)

    row1 = st.columns(2)
    row1[0].metric("Items", total)
    row1[1].metric("Complete", complete)

    row2 = st.columns(2)
    row2[0].metric("Needs review", counts.get(UploadStatus.MANUAL.value, 0))
    row2[1].metric("Errors", counts.get(UploadStatus.ERROR.value, 0))

    st.progress(complete / total if total else 0)
    st.caption(f"{complete} of {total} stored")


def _edit_controls(batch: BatchUpload, index: int, item: UploadItem) -> None:
    """Render editable extracted fields and apply changes back to the item."""

    row = {label: getattr(item.fields, name) for label, name in EDITABLE_LABELS.items()}
    edited_rows = st.data_editor(
        [row],
        hide_index=True,
        num_rows="fixed",
        use_container_width=True,
        key=f"fields_{index}_{item.filename}",
        column_config={
            "Year": st.column_config.NumberColumn("Year", format="%d"),
            "Total": st.column_config.NumberColumn("Total", format="%.2f"),
            "Parts": st.column_config.NumberColumn("Parts", format="%.2f"),
            "Labor": st.column_config.NumberColumn("Labor", format="%.2f"),
        },
    )
    edited_row = edited_rows[0] if edited_rows else row

    updates = {}
    for label, name in EDITABLE_LABELS.items():
        value = edited_row.get(label)
        if value in ("", None) or value == getattr(item.fields, name):
            continue
        try:
            if name in NUMERIC_FIELDS:
                value = float(value)
            elif name == "vehicle_year":
                value = int(value)
        except (TypeError, ValueError):
            st.warning(f"{label}: '{value}' is not a number")
            continue
        updates[name] = value
    if updates:
        batch.edit_fields(index, updates)


def _match_controls(batch: BatchUpload, index: int, item: UploadItem) -> None:
    """Let the operator pick a customer/vehicle or keep the item as an orphan."""

    snapshot = batch.snapshot
    options = _customer_options(snapshot)
    if item.store_for_later:
        current = STORE_FOR_LATER
    else:
        current = item.selected_customer_id or AUTO_MATCH

    choice = st.selectbox(
        "Customer",
        options=list(options),
        index=list(options).index(current) if current in options else 0,
        format_func=options.get,
        key=f"customer_{index}_{item.filename}",
    )

    if choice == STORE_FOR_LATER:
        if not item.store_for_later:
            batch.store_for_later(index)
        return
    if choice == AUTO_MATCH:
        if item.store_for_later or item.selected_customer_id:
            clear_selection(item)
        return

    vehicles = {"": "No vehicle"}
    for vehicle in snapshot.vehicles_for(choice):
        description = " ".join(str(part) for part in (vehicle.year, vehicle.make, vehicle.model) if part)
        vehicles[vehicle.id] = description or vehicle.vin or vehicle.license_plate or vehicle.id
    vehicle_choice = st.selectbox(
        "Vehicle",
        options=list(vehicles),
        format_func=vehicles.get,
        key=f"vehicle_{index}_{item.filename}",
    )
    if choice != item.selected_customer_id or (vehicle_choice or None) != item.selected_vehicle_id:
        batch.select_customer(index, choice, vehicle_choice or None)


def _render_item(batch: BatchUpload, index: int, item: UploadItem) -> None:
    pages = f" · pages {item.page_range[0] + 1}-{item.page_range[1] + 1}" if item.page_range else ""
    title = f"{_status_badge(item.status)} · {item.filename}{pages}"
    with st.expander(title, expanded=item.status in {UploadStatus.MANUAL, UploadStatus.ERROR}):
        if item.status == UploadStatus.ERROR:
            st.error(item.error or "Unknown error")
            cols = st.columns(2)
            if cols[0].button("Retry", key=f"retry_{index}"):
                batch.retry(index)
                _rerun_app()
            if cols[1].button("Remove", key=f"remove_{index}"):
                batch.remove(index)
                _rerun_app()
            return

        if item.status == UploadStatus.COMPLETE:
            st.success(f"Stored at {item.file_url}")
            st.json(item.fields.to_dict())
            return

        if not item.is_reviewable:
            st.caption("Waiting for analysis.")
            return

        if item.resolution.customer_id:
            st.caption(f"Matched by {item.resolution.matched_by}")
        else:
            st.caption("No customer match; this order will be stored for later unless you pick one.")
        _match_controls(batch, index, item)
        _edit_controls(batch, index, item)
        if st.button("Remove", key=f"remove_{index}"):
            batch.remove(index)
            _rerun_app()


def _summary_downloads(items: List[UploadItem]) -> None:
    rows = batch_to_rows(items)
    if not rows:
        return

    import csv
    import io

    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=list(rows[0]))
    writer.writeheader()
    writer.writerows(rows)

    cols = st.columns(2)
    cols[0].download_button("Download CSV summary", buffer.getvalue(), file_name="repair_orders.csv", mime="text/csv")
    cols[1].download_button(
        "Download Excel summary",
        excel_bytes(rows),
        file_name="repair_orders.xlsx",
        mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    )


def main() -> None:
    """Launch the repair-order intake console."""

    configure_logging()
    st.set_page_config(page_title="Repair Order Intake", layout="wide", initial_sidebar_state="expanded")
    st.title("Repair Order Intake")
    st.caption("Upload repair-order PDFs, confirm customer matches, and store them for the shop.")

    try:
        settings = Settings.from_env()
    except ValueError as exc:
        st.error(str(exc))
        return

    st.session_state.setdefault("shop_id_input", get_config_value("RO_DEFAULT_SHOP_ID"))
    st.session_state.setdefault("auto_segment_toggle", settings.auto_segment)

    batch = _current_batch()
    with st.sidebar:
        st.text_input("Shop ID", key="shop_id_input", disabled=batch is not None)
        st.toggle(
            "Split multi-order PDFs",
            key="auto_segment_toggle",
            disabled=batch is not None,
            help="Detect repair-order headers and analyze each order separately.",
        )
        if batch is not None:
            st.subheader("Batch")
            _queue_dashboard(batch)
            if st.button("Abandon batch", type="secondary", disabled=batch.is_done):
                batch.abandon()
                st.session_state.pop("batch", None)
                _rerun_app()
            if batch.is_done and st.button("Start new batch"):
                st.session_state.pop("batch", None)
                _rerun_app()

    uploaded = st.file_uploader("Repair-order PDFs", type=["pdf"], accept_multiple_files=True)
    if uploaded and st.button("Analyze files", type="primary"):
        shop_id = st.session_state["shop_id_input"].strip()
        if not shop_id:
            st.error("Enter a shop ID before uploading.")
            return
        try:
            if batch is None:
                batch = _start_batch(settings, shop_id, st.session_state["auto_segment_toggle"])
            batch.add_files((upload.name, upload.getvalue()) for upload in uploaded)
            if not batch.auto_segment:
                batch.analyze_pending()
        except (ValueError, RuntimeError) as exc:
            st.error(str(exc))
            return
        _rerun_app()

    if batch is None or not batch.items:
        st.info("No files in the current batch yet.")
        return

    for index, item in enumerate(batch.items):
        _render_item(batch, index, item)

    ready = [item for item in batch.items if item.is_reviewable]
    if st.button(f"Upload {len(ready)} repair order(s)", type="primary", disabled=not ready):
        summary = batch.upload()
        if batch.has_errors:
            st.warning(f"Upload finished with errors: {summary}")
        else:
            st.success(f"Upload finished: {summary}")

    st.markdown("### Batch summary")
    st.dataframe(batch_to_rows(batch.items), use_container_width=True, hide_index=True)
    _summary_downloads(batch.items)


if __name__ == "__main__":
    main()
