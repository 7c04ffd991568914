"""Re-run the resolver over orphan repair orders once the directory changes.

Triggering is left to the caller (for example a "customer created" hook);
this module only knows how to match orphans against a fresh snapshot.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Tuple

from ro_intake.core.models import DirectorySnapshot, RepairOrderRecord
from ro_intake.processing.resolver import Resolution, resolve

logger = logging.getLogger(__name__)


def reconcile_orphans(
    orphans: Iterable[RepairOrderRecord], snapshot: DirectorySnapshot
) -> List[Tuple[RepairOrderRecord, Resolution]]:
    """Return the orphans that now resolve, paired with their resolution."""

    matches = []
    for record in orphans:
        if record.is_matched:
            continue
        resolution = resolve(record.orphan_fields(), snapshot)
        if resolution.customer_id:
            matches.append((record, resolution))
    return matches


def reconciliation_changes(resolution: Resolution) -> Dict[str, Any]:
    return {
        "customer_id": resolution.customer_id,
        "vehicle_id": resolution.vehicle_id,
        "is_matched": True,
    }


def reconcile_shop_orphans(shop_id: str, directory, records) -> int:
    """Fetch a shop's orphans, match them, and patch the rows that resolve.

    ``records`` must offer ``fetch_orphans(shop_id)`` and
    ``update(record_id, changes)``. A failed update is logged and skipped.
    """

    snapshot = directory.fetch_snapshot(shop_id)
    orphans = records.fetch_orphans(shop_id)
    updated = 0
    for record, resolution in reconcile_orphans(orphans, snapshot):
        try:
            records.update(record.id, reconciliation_changes(resolution))
        except Exception:
            logger.exception("Failed to reconcile repair order %s", record.id)
            continue
        updated += 1

    logger.info("Reconciled %d of %d orphan repair order(s) for shop %s", updated, len(orphans), shop_id)
    return updated
