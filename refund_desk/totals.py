from __future__ import annotations

from decimal import Decimal

from refund_desk.currency import ZERO, format_money, parse_lenient
from refund_desk.records import TOTALS_SENTINEL, Record

SUMMED_TEXT_FIELDS = ("quantity", "order_total", "shipping_paid", "shipping_cost")
SUMMED_DERIVED_FIELDS = ("total_shipping_paid", "refund_amount")


def strip_totals(records: list[Record]) -> list[Record]:
    records[:] = [record for record in records if not record.is_totals_row()]
    return records


def build_totals(records: list[Record]) -> Record:
    totals = Record(order_id=TOTALS_SENTINEL, is_totals=True)
    for name in SUMMED_TEXT_FIELDS:
        total = sum((parse_lenient(getattr(r, name)) for r in records), ZERO)
        setattr(totals, name, format_money(total))
    for name in SUMMED_DERIVED_FIELDS:
        total = sum((getattr(r, name) or ZERO for r in records), ZERO)
        setattr(totals, name, Decimal(format_money(total)))
    return totals


def append_totals(records: list[Record]) -> list[Record]:
    """Replace any existing totals record with a freshly summed one at the end."""
    strip_totals(records)
    records.append(build_totals(records))
    return records
