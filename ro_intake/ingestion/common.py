"""Shared normalizers and validators for repair-order text."""
from __future__ import annotations

import re
from datetime import date
from typing import Optional

VIN_CHARSET = re.compile(r"^[A-HJ-NPR-Z0-9]{17}$")
BOILERPLATE_WORDS = ("TOTAL", "REPAIR", "ORDER", "SERVICE", "VEHICLE")
MIN_MODEL_YEAR = 1990


def normalize_phone(raw: str) -> str:
    """Keep only the digits of a phone number."""

    return re.sub(r"\D", "", raw or "")


def is_valid_phone(value: str) -> bool:
    return len(value) == 10 and value.isdigit()


def is_valid_vin(value: Optional[str]) -> bool:
    """A VIN is exactly 17 characters over A-Z and 0-9 without I, O or Q."""

    return bool(value) and bool(VIN_CHARSET.match(value))


def is_boilerplate(value: str) -> bool:
    """True when a captured name is really form text such as 'REPAIR ORDER'."""

    upper = value.upper()
    return any(word in upper for word in BOILERPLATE_WORDS)


def collapse_whitespace(value: str) -> str:
    return " ".join(value.split())


def clean_amount(raw: str) -> Optional[float]:
    """Convert strings like '$1,042.50' into floats."""

    normalized = re.sub(r"[$\s,]", "", raw or "")
    if not normalized:
        return None
    try:
        return float(normalized)
    except ValueError:
        return None


def max_model_year(today: Optional[date] = None) -> int:
    return (today or date.today()).year + 1


def is_plausible_year(year: int, today: Optional[date] = None) -> bool:
    return MIN_MODEL_YEAR <= year <= max_model_year(today)


def expand_year(raw: str, today: Optional[date] = None) -> int:
    """Expand two-digit years into the current century."""

    year = int(raw)
    if len(raw) == 2:
        century = (today or date.today()).year // 100 * 100
        year += century
    return year


def normalize_date(year: int, month: int, day: int) -> Optional[str]:
    """Return an ISO-8601 date string, or None for impossible dates."""

    try:
        return date(year, month, day).isoformat()
    except ValueError:
        return None
