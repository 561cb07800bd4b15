from __future__ import annotations

from enum import Enum

from refund_desk.currency import ZERO, is_missing_or_invalid
from refund_desk.records import ROLE_ORDER, Record, Role
from refund_desk.refunds import is_group_first


class CellCategory(str, Enum):
    NORMAL = "normal"
    GROUP_FIRST = "group_first"
    MISSING_SHIPPING_PAID = "missing_shipping_paid"
    MISSING_SHIPPING_COST = "missing_shipping_cost"
    REFUND_VALID = "refund_valid"
    REFUND_ZERO_OR_NEGATIVE = "refund_zero_or_negative"
    REFUND_MISSING_DATA = "refund_missing_data"
    TOTALS = "totals"


CATEGORY_COLORS = {
    CellCategory.NORMAL: None,
    CellCategory.GROUP_FIRST: "E3F2FD",             # pale blue
    CellCategory.MISSING_SHIPPING_PAID: "FFF2CC",   # soft yellow
    CellCategory.MISSING_SHIPPING_COST: "FCE4D6",   # soft orange
    CellCategory.REFUND_VALID: "C8E6C9",            # green
    CellCategory.REFUND_ZERO_OR_NEGATIVE: "FFCDD2", # red
    CellCategory.REFUND_MISSING_DATA: "FFE0B2",     # amber
    CellCategory.TOTALS: "D9D9D9",                  # grey
}

FLAGGED_CATEGORIES = {
    CellCategory.MISSING_SHIPPING_PAID,
    CellCategory.MISSING_SHIPPING_COST,
    CellCategory.REFUND_ZERO_OR_NEGATIVE,
    CellCategory.REFUND_MISSING_DATA,
}


def _shipping_paid_invalid(record: Record) -> bool:
    return is_missing_or_invalid(record.shipping_paid, zero_is_missing=True)


def _shipping_cost_invalid(record: Record) -> bool:
    return is_missing_or_invalid(record.shipping_cost)


def _refund_category(record: Record) -> CellCategory:
    # A blank refund reads as zero, like any other blank currency cell.
    refund = ZERO if record.refund_amount is None else record.refund_amount
    if refund <= ZERO:
        return CellCategory.REFUND_ZERO_OR_NEGATIVE
    if _shipping_paid_invalid(record) or _shipping_cost_invalid(record):
        return CellCategory.REFUND_MISSING_DATA
    return CellCategory.REFUND_VALID


def classify_cell(record: Record, role: Role, *, group_first: bool) -> CellCategory:
    """Most specific highlight for one cell; earlier rules win."""
    role = Role(role)
    if record.is_totals_row():
        return CellCategory.TOTALS
    if role is Role.SHIPPING_PAID and _shipping_paid_invalid(record):
        return CellCategory.MISSING_SHIPPING_PAID
    if not group_first:
        return CellCategory.NORMAL
    if role is Role.SHIPPING_COST and _shipping_cost_invalid(record):
        return CellCategory.MISSING_SHIPPING_COST
    if role is Role.REFUND_AMOUNT:
        return _refund_category(record)
    return CellCategory.GROUP_FIRST


def classify_records(records: list[Record]) -> list[dict[Role, CellCategory]]:
    grid = []
    for record, first in zip(records, is_group_first(records)):
        grid.append({role: classify_cell(record, role, group_first=first) for role in ROLE_ORDER})
    return grid


def flagged_cells(records: list[Record]) -> int:
    return sum(
        1
        for row in classify_records(records)
        for category in row.values()
        if category in FLAGGED_CATEGORIES
    )
