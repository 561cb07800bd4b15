"""
Order-level and customer-level statistics.

Both are recomputed from the current records on every call and skip the
totals row. Values that are present but are not plain decimal numbers are
left out of the population they belong to rather than counted as zero.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Callable

from refund_desk.currency import ZERO, format_money, parse_stat_value, round2
from refund_desk.records import Record

TOP_CUSTOMERS = 5
HUNDRED = Decimal("100")


def _population(records: list[Record], getter: Callable[[Record], Any]) -> list[Decimal]:
    values = []
    for record in records:
        value = parse_stat_value(getter(record))
        if value is not None:
            values.append(value)
    return values


def mean(values: list) -> Decimal:
    if not values:
        return ZERO
    return round2(Decimal(sum(values)) / Decimal(len(values)))


def lower_median(values: list):
    """Middle element of the sorted values; the lower one for even counts."""
    if not values:
        return ZERO
    ordered = sorted(values)
    return ordered[(len(ordered) - 1) // 2]


def percent(part: int, whole: int) -> Decimal:
    if whole == 0:
        return ZERO
    return round2(Decimal(part) / Decimal(whole) * HUNDRED)


def _data_records(records: list[Record]) -> list[Record]:
    return [record for record in records if not record.is_totals_row()]


@dataclass(frozen=True)
class SummaryStatistics:
    order_count: int = 0
    refunded_count: int = 0
    refund_rate: Decimal = ZERO
    order_total_sum: Decimal = ZERO
    order_total_avg: Decimal = ZERO
    order_total_median: Decimal = ZERO
    order_total_min: Decimal = ZERO
    order_total_max: Decimal = ZERO
    shipping_cost_sum: Decimal = ZERO
    shipping_cost_avg: Decimal = ZERO
    shipping_cost_median: Decimal = ZERO
    shipping_cost_min: Decimal = ZERO
    shipping_cost_max: Decimal = ZERO
    shipping_paid_sum: Decimal = ZERO
    refund_sum: Decimal = ZERO

    def rows(self) -> list[tuple[str, str]]:
        return [
            ("Total Orders", str(self.order_count)),
            ("Refunded Orders", str(self.refunded_count)),
            ("Refund Rate (%)", format_money(self.refund_rate)),
            ("Total Order Value", format_money(self.order_total_sum)),
            ("Average Order Value", format_money(self.order_total_avg)),
            ("Median Order Value", format_money(self.order_total_median)),
            ("Min Order Value", format_money(self.order_total_min)),
            ("Max Order Value", format_money(self.order_total_max)),
            ("Total Shipping Cost", format_money(self.shipping_cost_sum)),
            ("Average Shipping Cost", format_money(self.shipping_cost_avg)),
            ("Median Shipping Cost", format_money(self.shipping_cost_median)),
            ("Min Shipping Cost", format_money(self.shipping_cost_min)),
            ("Max Shipping Cost", format_money(self.shipping_cost_max)),
            ("Total Shipping Paid", format_money(self.shipping_paid_sum)),
            ("Total Refund Amount", format_money(self.refund_sum)),
        ]

    def to_dict(self) -> dict[str, Any]:
        return {
            name: (str(value) if isinstance(value, Decimal) else value)
            for name, value in self.__dict__.items()
        }


@dataclass(frozen=True)
class CustomerStatistics:
    total_customers: int = 0
    avg_purchases: Decimal = ZERO
    median_purchases: int = 0
    repeat_rate: Decimal = ZERO
    top_customers: list[tuple[str, int]] = field(default_factory=list)
    avg_shipping_paid: Decimal = ZERO
    avg_shipping_cost: Decimal = ZERO

    def rows(self) -> list[tuple[str, str]]:
        rows = [
            ("Total Customers", str(self.total_customers)),
            ("Average Purchases per Customer", format_money(self.avg_purchases)),
            ("Median Purchases per Customer", str(self.median_purchases)),
            ("Repeat Customer Rate (%)", format_money(self.repeat_rate)),
            ("Average Shipping Paid", format_money(self.avg_shipping_paid)),
            ("Average Shipping Cost", format_money(self.avg_shipping_cost)),
        ]
        for rank, (recipient, count) in enumerate(self.top_customers, start=1):
            rows.append((f"Top Customer {rank}", f"{recipient} ({count})"))
        return rows

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_customers": self.total_customers,
            "avg_purchases": str(self.avg_purchases),
            "median_purchases": self.median_purchases,
            "repeat_rate": str(self.repeat_rate),
            "top_customers": [
                {"recipient": recipient, "orders": count} for recipient, count in self.top_customers
            ],
            "avg_shipping_paid": str(self.avg_shipping_paid),
            "avg_shipping_cost": str(self.avg_shipping_cost),
        }


def summary_statistics(records: list[Record]) -> SummaryStatistics:
    data = _data_records(records)
    order_totals = sorted(_population(data, lambda r: r.order_total))
    shipping_costs = sorted(_population(data, lambda r: r.shipping_cost))
    shipping_paid = _population(data, lambda r: r.shipping_paid)
    refunds = _population(data, lambda r: r.refund_amount)

    order_count = len(order_totals)
    refunded_count = sum(1 for value in refunds if value > ZERO)

    return SummaryStatistics(
        order_count=order_count,
        refunded_count=refunded_count,
        refund_rate=percent(refunded_count, order_count),
        order_total_sum=sum(order_totals, ZERO),
        order_total_avg=mean(order_totals),
        order_total_median=lower_median(order_totals),
        order_total_min=order_totals[0] if order_totals else ZERO,
        order_total_max=order_totals[-1] if order_totals else ZERO,
        shipping_cost_sum=sum(shipping_costs, ZERO),
        shipping_cost_avg=mean(shipping_costs),
        shipping_cost_median=lower_median(shipping_costs),
        shipping_cost_min=shipping_costs[0] if shipping_costs else ZERO,
        shipping_cost_max=shipping_costs[-1] if shipping_costs else ZERO,
        shipping_paid_sum=sum(shipping_paid, ZERO),
        refund_sum=sum(refunds, ZERO),
    )


def customer_statistics(records: list[Record], top_n: int = TOP_CUSTOMERS) -> CustomerStatistics:
    data = _data_records(records)
    counts: dict[str, int] = {}
    for record in data:
        if not record.recipient.strip():
            continue
        counts[record.recipient] = counts.get(record.recipient, 0) + 1

    sizes = list(counts.values())
    total_customers = len(counts)
    repeaters = sum(1 for size in sizes if size > 1)
    # sorted() is stable, so ties keep first-encounter order.
    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)

    return CustomerStatistics(
        total_customers=total_customers,
        avg_purchases=mean(sizes),
        median_purchases=lower_median(sizes) if sizes else 0,
        repeat_rate=percent(repeaters, total_customers),
        top_customers=ranked[:top_n],
        avg_shipping_paid=mean(_population(data, lambda r: r.shipping_paid)),
        avg_shipping_cost=mean(_population(data, lambda r: r.shipping_cost)),
    )
