"""Batch upload state machine, per-item isolation, and operator overrides."""
from datetime import date

import pytest
from conftest import SHOP_ID, make_pdf, order_page

import ro_intake.processing.orchestrator as orchestrator
from ro_intake.core.models import DirectorySnapshot, ExtractedFields, RepairOrderRecord
from ro_intake.processing.items import InvalidTransition, UploadItem, UploadStatus
from ro_intake.processing.orchestrator import BatchUpload, build_record
from ro_intake.storage.memory import MemoryObjectStore

UNKNOWN_ORDER = order_page(2002, name="Pat Unknown", phone="555-000-1111", email="pat@nowhere.test")


class FlakyStore(MemoryObjectStore):
    """Object store that refuses named files a set number of times."""

    def __init__(self, failures):
        super().__init__()
        self.failures = dict(failures)

    def write(self, shop_id, filename, data):
        if self.failures.get(filename, 0) > 0:
            self.failures[filename] -= 1
            raise ConnectionError(f"storage unavailable for {filename}")
        return super().write(shop_id, filename, data)


def _batch(snapshot, store, records, **kwargs):
    return BatchUpload(SHOP_ID, snapshot, store, records, **kwargs)


def test_transition_table_rejects_illegal_moves():
    item = UploadItem(filename="a.pdf", content=b"")

    with pytest.raises(InvalidTransition):
        item.transition(UploadStatus.COMPLETE)

    item.fail("boom")
    assert item.status == UploadStatus.ERROR
    assert item.is_terminal
    with pytest.raises(InvalidTransition):
        item.transition(UploadStatus.ANALYZING)


def test_batch_requires_a_shop():
    with pytest.raises(ValueError):
        BatchUpload("", DirectorySnapshot(), MemoryObjectStore(), None)


def test_merged_pdf_is_segmented_analyzed_and_persisted(snapshot, store, records):
    pdf = make_pdf([order_page(1001), ["Labor: $500.00"], UNKNOWN_ORDER])
    batch = _batch(snapshot, store, records)

    items = batch.add_files([("merged.pdf", pdf)])

    assert [item.filename for item in items] == ["merged_part1.pdf", "merged_part2.pdf"]
    assert [item.status for item in items] == [UploadStatus.MATCHED, UploadStatus.MANUAL]
    assert items[0].resolution.matched_by == "phone"

    summary = batch.upload()

    assert summary == {"complete": 2}
    assert batch.is_done
    matched, orphan = records.records
    assert matched.customer_id == "c1"
    assert matched.is_matched
    assert matched.temp_customer_name is None
    assert matched.total_amount == 1000.0
    assert not orphan.is_matched
    assert orphan.customer_id is None
    assert orphan.temp_customer_name == "Pat Unknown"
    assert orphan.temp_customer_phone == "5550001111"
    assert orphan.service_date == "2024-03-12"
    assert all(item.file_url in store.objects for item in batch.items)


def test_one_failed_upload_does_not_stop_the_batch(snapshot, records):
    store = FlakyStore({"b.pdf": 1})
    batch = _batch(snapshot, store, records)
    batch.add_files(
        [
            ("a.pdf", make_pdf([order_page(1)])),
            ("b.pdf", make_pdf([order_page(2)])),
            ("c.pdf", make_pdf([order_page(3)])),
        ]
    )

    summary = batch.upload()

    assert summary == {"complete": 2, "error": 1}
    assert [item.status for item in batch.items] == [
        UploadStatus.COMPLETE,
        UploadStatus.ERROR,
        UploadStatus.COMPLETE,
    ]
    assert "storage unavailable" in batch.items[1].error
    assert len(records.records) == 2
    assert batch.has_errors
    assert not batch.is_done


def test_retry_replaces_the_errored_item_and_keeps_overrides(snapshot, records):
    store = FlakyStore({"b.pdf": 1})
    batch = _batch(snapshot, store, records)
    batch.add_files([("b.pdf", make_pdf([UNKNOWN_ORDER]))])
    batch.select_customer(0, "c3")
    batch.upload()
    assert batch.items[0].status == UploadStatus.ERROR

    fresh = batch.retry(0)

    assert fresh.status == UploadStatus.MANUAL
    assert fresh.selected_customer_id == "c3"
    assert fresh.error is None
    batch.upload()
    assert batch.is_done
    assert records.records[0].customer_id == "c3"


def test_retry_only_applies_to_errored_items(snapshot, store, records):
    batch = _batch(snapshot, store, records)
    batch.add_files([("a.pdf", make_pdf([order_page(1)]))])

    with pytest.raises(InvalidTransition):
        batch.retry(0)


def test_operator_choice_overrides_the_cascade(snapshot, store, records):
    batch = _batch(snapshot, store, records)
    batch.add_files([("a.pdf", make_pdf([order_page(1)])), ("b.pdf", make_pdf([UNKNOWN_ORDER]))])

    batch.select_customer(1, "c2", "v3")
    batch.upload()

    first, second = records.records
    assert first.customer_id == "c1"
    assert (second.customer_id, second.vehicle_id, second.is_matched) == ("c2", "v3", True)
    assert second.temp_customer_name is None


def test_store_for_later_persists_a_matched_item_as_orphan(snapshot, store, records):
    batch = _batch(snapshot, store, records)
    batch.add_files([("a.pdf", make_pdf([order_page(1)]))])
    assert batch.items[0].status == UploadStatus.MATCHED

    batch.store_for_later(0)
    batch.upload()

    record = records.records[0]
    assert record.customer_id is None
    assert not record.is_matched
    assert record.temp_customer_email == "john.smith@example.com"


def test_corrections_are_refused_after_upload(snapshot, store, records):
    batch = _batch(snapshot, store, records)
    batch.add_files([("a.pdf", make_pdf([order_page(1)]))])
    batch.upload()

    with pytest.raises(InvalidTransition):
        batch.select_customer(0, "c2")
    with pytest.raises(InvalidTransition):
        batch.edit_fields(0, {"total_amount": 5.0})


def test_edited_fields_reach_the_record(snapshot, store, records):
    batch = _batch(snapshot, store, records)
    batch.add_files([("a.pdf", make_pdf([order_page(1)]))])

    batch.edit_fields(0, {"total_amount": 1234.5, "service_writer": "Ann Lee"})
    batch.upload()

    assert records.records[0].total_amount == 1234.5
    assert batch.items[0].fields.service_writer == "Ann Lee"


def test_pending_mode_queues_files_without_splitting(snapshot, store, records):
    pdf = make_pdf([order_page(1001), UNKNOWN_ORDER])
    batch = _batch(snapshot, store, records, auto_segment=False)

    items = batch.add_files([("merged.pdf", pdf)])

    assert len(items) == 1
    assert items[0].status == UploadStatus.PENDING
    assert batch.upload() == {"pending": 1}

    batch.analyze_pending()
    assert batch.items[0].status == UploadStatus.MATCHED
    assert batch.items[0].fields.customer_name == "John Smith"


def test_analysis_failure_marks_only_that_item(monkeypatch, snapshot, store, records):
    real_extract = orchestrator.extract_fields

    def flaky_extract(text):
        if "Pat Unknown" in text:
            raise RuntimeError("parser exploded")
        return real_extract(text)

    monkeypatch.setattr(orchestrator, "extract_fields", flaky_extract)
    batch = _batch(snapshot, store, records)

    items = batch.add_files([("a.pdf", make_pdf([order_page(1)])), ("b.pdf", make_pdf([UNKNOWN_ORDER]))])

    assert items[0].status == UploadStatus.MATCHED
    assert items[1].status == UploadStatus.ERROR
    assert "parser exploded" in items[1].error


def test_segmentation_failure_becomes_an_error_item(monkeypatch, snapshot, store, records):
    def broken_split(content, filename):
        raise RuntimeError("bad xref")

    monkeypatch.setattr(orchestrator, "split_document", broken_split)
    batch = _batch(snapshot, store, records)

    items = batch.add_files([("a.pdf", b"%PDF")])

    assert items[0].status == UploadStatus.ERROR
    assert "bad xref" in items[0].error


def test_remove_and_abandon(snapshot, store, records):
    batch = _batch(snapshot, store, records)
    batch.add_files([("a.pdf", make_pdf([order_page(1)]))])
    batch.upload()
    batch.add_files([("b.pdf", make_pdf([UNKNOWN_ORDER])), ("c.pdf", make_pdf([order_page(3)]))])

    removed = batch.remove(2)
    dropped = batch.abandon()

    assert removed.filename == "c.pdf"
    assert [item.filename for item in dropped] == ["b.pdf"]
    assert [item.status for item in batch.items] == [UploadStatus.COMPLETE]
    assert len(records.records) == 1
    with pytest.raises(RuntimeError):
        batch.add_files([("d.pdf", make_pdf([order_page(4)]))])


def test_build_record_falls_back_to_the_processing_date():
    item = UploadItem(filename="a.pdf", content=b"", fields=ExtractedFields(customer_name="Pat Unknown"))

    record = build_record(SHOP_ID, item, "memory://a.pdf", today=date(2024, 5, 1))

    assert record.service_date == "2024-05-01"
    assert record.temp_customer_name == "Pat Unknown"
    assert record.is_matched is False


def test_orphan_record_round_trip_keeps_identity_fields():
    fields = ExtractedFields(customer_name="Pat Unknown", vin="1HGCM82633A004352", total_amount=88.0)
    item = UploadItem(filename="a.pdf", content=b"", fields=fields)

    stored = build_record(SHOP_ID, item, "memory://a.pdf").to_dict()
    restored = RepairOrderRecord.from_dict({**stored, "id": "r1", "created_at": "now"})

    assert restored.temp_customer_name == "Pat Unknown"
    assert restored.temp_vin == "1HGCM82633A004352"
    assert restored.orphan_fields().vin == "1HGCM82633A004352"
    assert restored.id == "r1"


def test_retry_resegments_a_file_that_failed_to_split(monkeypatch, snapshot, store, records):
    real_split = orchestrator.split_document
    calls = []

    def split_once_broken(content, filename):
        calls.append(filename)
        if len(calls) == 1:
            raise RuntimeError("bad xref")
        return real_split(content, filename)

    monkeypatch.setattr(orchestrator, "split_document", split_once_broken)
    batch = _batch(snapshot, store, records)
    batch.add_files([("merged.pdf", make_pdf([order_page(1001), UNKNOWN_ORDER]))])
    assert batch.items[0].status == UploadStatus.ERROR

    first = batch.retry(0)

    assert first.filename == "merged_part1.pdf"
    assert [item.filename for item in batch.items] == ["merged_part1.pdf", "merged_part2.pdf"]
    assert [item.status for item in batch.items] == [UploadStatus.MATCHED, UploadStatus.MANUAL]
    assert batch.upload() == {"complete": 2}
