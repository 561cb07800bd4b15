"""
Currency text parsing.

Two entry points:
    parse_or_zero  strict, raises FormatError on text it cannot read
    try_parse      lenient, returns None on failure (parse_lenient maps that to 0)

Statistics use parse_stat_value, which only accepts plain decimal numbers
once `$` and `,` are removed.
"""

from __future__ import annotations

import re
from decimal import ROUND_HALF_EVEN, Decimal, InvalidOperation

from refund_desk.errors import FormatError

ZERO = Decimal("0")
CENT = Decimal("0.01")

_NOT_NUMERIC_RE = re.compile(r"[^0-9.\-]")
_STAT_NUMBER_RE = re.compile(r"^-?\d+(?:\.\d+)?$")


def clean(text: object) -> str:
    if text is None:
        return "0"
    return _NOT_NUMERIC_RE.sub("", str(text))


def _to_decimal(cleaned: str) -> Decimal:
    value = Decimal(cleaned)
    if not value.is_finite():
        raise InvalidOperation(cleaned)
    return value


def parse_or_zero(text: object, field: str | None = None) -> Decimal:
    cleaned = clean(text)
    if not cleaned.strip():
        # Blank input is zero; text with no digits at all ("abc") is not.
        if text is not None and str(text).strip():
            raise FormatError(text, field)
        return ZERO
    try:
        return _to_decimal(cleaned)
    except InvalidOperation as exc:
        raise FormatError(text, field) from exc


def try_parse(text: object) -> Decimal | None:
    cleaned = clean(text)
    if not cleaned.strip():
        return ZERO
    try:
        return _to_decimal(cleaned)
    except InvalidOperation:
        return None


def parse_lenient(text: object) -> Decimal:
    value = try_parse(text)
    return ZERO if value is None else value


def parse_stat_value(text: object) -> Decimal | None:
    if text is None:
        return None
    if isinstance(text, Decimal):
        return text
    candidate = str(text).strip().replace("$", "").replace(",", "")
    if not _STAT_NUMBER_RE.match(candidate):
        return None
    return Decimal(candidate)


def is_missing_or_invalid(text: object, *, zero_is_missing: bool = False) -> bool:
    """True when the cleaned text is blank or unreadable (or zero, if asked)."""
    cleaned = clean(text)
    if not cleaned.strip():
        return True
    try:
        value = _to_decimal(cleaned)
    except InvalidOperation:
        return True
    return zero_is_missing and value == ZERO


def round2(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_EVEN)


def format_money(value: Decimal | None) -> str:
    if value is None:
        return ""
    return str(round2(value))
