from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from refund_desk.currency import ZERO, parse_lenient
from refund_desk.records import Record


@dataclass
class RecipientGroup:
    recipient: str
    records: list[Record] = field(default_factory=list)

    @property
    def first(self) -> Record:
        return self.records[0]

    @property
    def total_paid(self) -> Decimal:
        return sum((parse_lenient(r.shipping_paid) for r in self.records), ZERO)

    @property
    def total_cost(self) -> Decimal:
        return sum((parse_lenient(r.shipping_cost) for r in self.records), ZERO)

    @property
    def refund(self) -> Decimal | None:
        paid, cost = self.total_paid, self.total_cost
        if paid == ZERO and cost == ZERO:
            return None
        return paid - cost


def group_by_recipient(records: list[Record]) -> list[RecipientGroup]:
    """Groups in first-encounter order; members keep their order in `records`."""
    groups: dict[str, RecipientGroup] = {}
    for record in records:
        if record.is_totals_row():
            continue
        group = groups.get(record.recipient)
        if group is None:
            group = groups[record.recipient] = RecipientGroup(record.recipient)
        group.records.append(record)
    return list(groups.values())


def is_group_first(records: list[Record]) -> list[bool]:
    seen: set[str] = set()
    flags = []
    for record in records:
        if record.is_totals_row() or record.recipient in seen:
            flags.append(False)
            continue
        seen.add(record.recipient)
        flags.append(True)
    return flags


def compute_refunds(records: list[Record]) -> list[Record]:
    """
    Fill the group-level fields in place.

    Only the first record of each recipient group carries total_shipping_paid
    and refund_amount; the rest are cleared to None. Running it again on the
    same records gives the same result.
    """
    for group in group_by_recipient(records):
        paid = group.total_paid
        first = group.first
        first.total_shipping_paid = paid if paid != ZERO else None
        first.refund_amount = group.refund
        for follower in group.records[1:]:
            follower.total_shipping_paid = None
            follower.refund_amount = None
    return records
