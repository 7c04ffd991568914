"""Review utilities for operator-in-the-loop corrections."""
from ro_intake.review.workflow import (
    apply_edits,
    clear_selection,
    items_to_rows,
    select_match,
    store_for_later,
)

__all__ = [
    "apply_edits",
    "clear_selection",
    "items_to_rows",
    "select_match",
    "store_for_later",
]
