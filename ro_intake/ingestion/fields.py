"""Heuristic field extraction from repair-order text.

Each field owns an ordered list of rules. A rule is a regex, a normalizer
that turns a match into a value, and a validator that decides whether the
value is usable. ``extract_fields`` walks the table with one loop; adding a
layout variant means appending a rule, not writing a new parser.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, Optional, Pattern, Tuple

from ro_intake.core.models import ExtractedFields
from ro_intake.ingestion.common import (
    clean_amount,
    collapse_whitespace,
    expand_year,
    is_boilerplate,
    is_plausible_year,
    is_valid_phone,
    is_valid_vin,
    normalize_date,
    normalize_phone,
)

logger = logging.getLogger(__name__)

FIRST = "first"
EARLIEST = "earliest"
MAXIMUM = "maximum"

MAX_AMOUNT = 100_000

SEP = r"[ \t]*[:#\-]?[ \t]*"
MONEY_SEP = r"[ \t]*[:\-]?[ \t]*\$?[ \t]*"
AMOUNT = r"(\d[\d,]*(?:\.\d{1,2})?)"
NAME_WORD = r"[A-Z](?:[a-z]*['\-][A-Z][a-z]+|[a-z]+)"
PHONE_BODY = r"\(?\d{3}\)?[ \t.\-]?\d{3}[ \t.\-]?\d{4}"
CONTACT_AHEAD = r"(?=\(?\d{3}\)?[ \t.\-]?\d{3}[ \t.\-]\d{4}|[A-Za-z0-9._%+-]+@)"
# a capitalized word that is not itself the next label on the line
NAME_TOKEN = rf"(?!{NAME_WORD}[ \t]*[:#]){NAME_WORD}"

LABEL_WORDS = frozenset({"name", "customer", "date", "phone", "writer", "advisor", "technician"})
MONTH_NAME = (
    r"(jan(?:uary)?|feb(?:ruary)?|mar(?:ch)?|apr(?:il)?|may|june?|july?|aug(?:ust)?"
    r"|sep(?:t(?:ember)?)?|oct(?:ober)?|nov(?:ember)?|dec(?:ember)?)"
)

MONTHS = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
}


@dataclass(frozen=True)
class Rule:
    pattern: Pattern[str]
    normalizer: Callable[[re.Match], Any]
    validator: Callable[[Any], bool]


@dataclass(frozen=True)
class FieldSpec:
    rules: Tuple[Rule, ...]
    select: str = FIRST
    # set when one match fills several ExtractedFields attributes
    targets: Optional[Tuple[str, ...]] = None


def _rule(pattern: str, normalizer, validator, flags: int = 0) -> Rule:
    return Rule(re.compile(pattern, flags), normalizer, validator)


def _group(match: re.Match) -> str:
    return match.group(1).strip()


def _valid_name(value: str) -> bool:
    return 5 <= len(value) <= 50 and not is_boilerplate(value)


def _valid_writer(value: str) -> bool:
    return 4 <= len(value) < 50 and value.lower() not in LABEL_WORDS and not is_boilerplate(value)


def _last_first(match: re.Match) -> str:
    return f"{match.group(2)} {match.group(1).title()}"


def _phone(match: re.Match) -> str:
    return normalize_phone(match.group(1))


def _vin(match: re.Match) -> str:
    return match.group(1).upper()


def _vehicle(match: re.Match) -> Tuple[int, str, str]:
    return int(match.group(1)), match.group(2), collapse_whitespace(match.group(3))


def _valid_vehicle(value: Tuple[int, str, str]) -> bool:
    year, make, model = value
    return is_plausible_year(year) and not is_boilerplate(f"{make} {model}")


def _plate(match: re.Match) -> str:
    return re.sub(r"\s+", "", match.group(1)).upper()


def _valid_plate(value: str) -> bool:
    return 2 <= len(value) <= 8 and any(ch.isalnum() for ch in value)


def _us_date(match: re.Match) -> Optional[str]:
    month, day, year = match.groups()
    return normalize_date(expand_year(year), int(month), int(day))


def _iso_date(match: re.Match) -> Optional[str]:
    year, month, day = match.groups()
    return normalize_date(int(year), int(month), int(day))


def _month_name_date(match: re.Match) -> Optional[str]:
    month, day, year = match.groups()
    return normalize_date(int(year), MONTHS[month[:3].lower()], int(day))


def _valid_date(value: Optional[str]) -> bool:
    return bool(value) and is_plausible_year(int(value[:4]))


def _amount(match: re.Match) -> Optional[float]:
    return clean_amount(match.group(1))


def _valid_total(value: Optional[float]) -> bool:
    return value is not None and 0 < value < MAX_AMOUNT


def _positive(value: Optional[float]) -> bool:
    return value is not None and value > 0


NAME_LABEL = r"(?i:\b(?:customer(?:[ \t]+name)?|client|owner|(?<![A-Za-z][ \t])name))"
WRITER_LABEL = (
    r"(?i:\b(?:service[ \t]+writer|service[ \t]+advisor|writer|advisor|technician|serviced[ \t]+by)"
    r"(?:[ \t]+name)?)"
)
PLATE_LABEL = (
    r"(?i:\b(?:license[ \t]+plate|lic\.?[ \t]*plate|license|lic\.?|plate|tag|lp))(?![A-Za-z])"
    r"(?:[ \t]*(?i:no\.?|number|\#))?"
)
TOTAL_LABEL = (
    r"(?i:\b(?:grand[ \t]+total|repair[ \t]+order[ \t]+total|total[ \t]+due|total[ \t]+amount"
    r"|total|balance(?:[ \t]+due)?|amount[ \t]+due))"
)

FIELD_RULES: Dict[str, FieldSpec] = {
    "customer_name": FieldSpec(
        rules=(
            _rule(rf"{NAME_LABEL}{SEP}({NAME_TOKEN}(?:[ \t]+{NAME_TOKEN})+)", _group, _valid_name),
            _rule(rf"\b([A-Z]{{2,}}(?:['\-][A-Z]+)?),[ \t]*({NAME_WORD})\b", _last_first, _valid_name),
            _rule(
                rf"(?<![\w])({NAME_WORD}[ \t]+{NAME_WORD})[ \t,]*\n?[ \t]*{CONTACT_AHEAD}",
                _group,
                _valid_name,
            ),
        ),
    ),
    "customer_phone": FieldSpec(
        rules=(
            _rule(
                rf"(?i:\b(?:telephone|phone|mobile|cell|tel|ph))\.?{SEP}({PHONE_BODY})(?!\d)",
                _phone,
                is_valid_phone,
            ),
            _rule(
                r"(?<!\d)((?:\(\d{3}\)[ \t]?|\d{3}[ \t.\-])\d{3}[ \t.\-]\d{4})(?!\d)",
                _phone,
                is_valid_phone,
            ),
        ),
    ),
    "customer_email": FieldSpec(
        rules=(
            _rule(
                r"([A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,})",
                lambda match: match.group(1).lower(),
                bool,
            ),
        ),
    ),
    "vin": FieldSpec(
        rules=(
            _rule(
                rf"(?i:\b(?:VIN|vehicle[ \t]+identification(?:[ \t]+(?:number|no\.?))?)){SEP}"
                r"([A-Za-z0-9]{17})(?![A-Za-z0-9])",
                _vin,
                is_valid_vin,
            ),
            _rule(r"(?<![A-Za-z0-9])([A-HJ-NPR-Z0-9]{17})(?![A-Za-z0-9])", _vin, is_valid_vin),
        ),
    ),
    "vehicle": FieldSpec(
        rules=(
            _rule(
                r"(?<![\w/.\-$,])(\d{4})[ \t]+([A-Z][A-Za-z\-]+)[ \t]+"
                r"([A-Z][A-Za-z0-9\-]*(?:[ \t]+[A-Z][a-z]+(?=[ \t]*$))?)",
                _vehicle,
                _valid_vehicle,
                re.MULTILINE,
            ),
        ),
        targets=("vehicle_year", "vehicle_make", "vehicle_model"),
    ),
    "license_plate": FieldSpec(
        rules=(
            _rule(rf"{PLATE_LABEL}{SEP}([A-Z0-9]{{1,4}}[ \-][A-Z0-9]{{1,5}})(?![A-Za-z0-9])", _plate, _valid_plate),
            _rule(rf"{PLATE_LABEL}{SEP}([A-Za-z0-9\-]{{2,10}})(?![A-Za-z0-9\-])", _plate, _valid_plate),
        ),
    ),
    "service_date": FieldSpec(
        rules=(
            _rule(r"(?<![\d/\-])(\d{1,2})[/\-](\d{1,2})[/\-](\d{4}|\d{2})(?![\d/\-])", _us_date, _valid_date),
            _rule(r"(?<![\d/\-])(\d{4})-(\d{1,2})-(\d{1,2})(?![\d/\-])", _iso_date, _valid_date),
            _rule(
                rf"(?i:\b{MONTH_NAME}\.?)[ \t]+(\d{{1,2}}),?[ \t]+(\d{{4}})\b",
                _month_name_date,
                _valid_date,
            ),
        ),
        select=EARLIEST,
    ),
    "total_amount": FieldSpec(
        rules=(_rule(rf"{TOTAL_LABEL}{MONEY_SEP}{AMOUNT}", _amount, _valid_total),),
        select=MAXIMUM,
    ),
    "parts_cost": FieldSpec(
        rules=(
            _rule(rf"(?i:\bparts(?:[ \t]+(?:total|cost|subtotal|amount))?){MONEY_SEP}{AMOUNT}", _amount, _positive),
        ),
    ),
    "labor_cost": FieldSpec(
        rules=(
            _rule(rf"(?i:\blabou?r(?:[ \t]+(?:total|cost|subtotal|amount))?){MONEY_SEP}{AMOUNT}", _amount, _positive),
        ),
    ),
    "service_writer": FieldSpec(
        rules=(_rule(rf"{WRITER_LABEL}{SEP}({NAME_TOKEN}(?:[ \t]+{NAME_TOKEN})*)", _group, _valid_writer),),
    ),
}


def iter_candidates(field_spec: FieldSpec, text: str) -> Iterator[Any]:
    """Yield every validated value, rule by rule, in document order."""

    for rule in field_spec.rules:
        for match in rule.pattern.finditer(text):
            value = rule.normalizer(match)
            if value is not None and rule.validator(value):
                yield value


def select_value(field_spec: FieldSpec, text: str) -> Any:
    candidates = iter_candidates(field_spec, text)
    if field_spec.select == FIRST:
        return next(candidates, None)

    values = list(candidates)
    if not values:
        return None
    if field_spec.select == EARLIEST:
        return min(values)
    if field_spec.select == MAXIMUM:
        return max(values)
    raise ValueError(f"Unknown selection strategy: {field_spec.select}")


def extract_field(name: str, text: str) -> Any:
    """Run a single entry of ``FIELD_RULES`` against ``text``."""

    return select_value(FIELD_RULES[name], text or "")


def extract_fields(text: str) -> ExtractedFields:
    """Parse a segment's text into a partial :class:`ExtractedFields`."""

    values: Dict[str, Any] = {}
    for name, field_spec in FIELD_RULES.items():
        value = select_value(field_spec, text or "")
        if value is None:
            continue
        if field_spec.targets:
            values.update(zip(field_spec.targets, value))
        else:
            values[name] = value

    extracted = ExtractedFields(**values)
    logger.debug("Extracted %d field(s): %s", len(values), sorted(values))
    return extracted
