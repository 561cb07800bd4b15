from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum

from refund_desk.currency import format_money

TOTALS_SENTINEL = "TOTAL"


class Role(str, Enum):
    ORDER_ID = "order_id"
    ITEM_NAME = "item_name"
    RECIPIENT = "recipient"
    QUANTITY = "quantity"
    ORDER_TOTAL = "order_total"
    SHIPPING_PAID = "shipping_paid"
    TOTAL_SHIPPING_PAID = "total_shipping_paid"
    SHIPPING_COST = "shipping_cost"
    REFUND_AMOUNT = "refund_amount"


ROLE_ORDER = tuple(Role)
DERIVED_ROLES = (Role.TOTAL_SHIPPING_PAID, Role.REFUND_AMOUNT)
TEXT_ROLES = tuple(role for role in ROLE_ORDER if role not in DERIVED_ROLES)
# Columns created on import even when the source file lacks them.
ENSURED_ROLES = (
    Role.SHIPPING_PAID,
    Role.SHIPPING_COST,
    Role.TOTAL_SHIPPING_PAID,
    Role.REFUND_AMOUNT,
)
CURRENCY_ROLES = (Role.ORDER_TOTAL, Role.SHIPPING_PAID, Role.SHIPPING_COST)
NUMERIC_ROLES = (Role.QUANTITY,) + CURRENCY_ROLES

DEFAULT_COLUMNS: dict[Role, str] = {
    Role.ORDER_ID: "Order ID",
    Role.ITEM_NAME: "Item Name",
    Role.RECIPIENT: "Recipient",
    Role.QUANTITY: "Quantity",
    Role.ORDER_TOTAL: "Order Total",
    Role.SHIPPING_PAID: "Shipping Paid",
    Role.TOTAL_SHIPPING_PAID: "Total Shipping Paid",
    Role.SHIPPING_COST: "Shipping Cost",
    Role.REFUND_AMOUNT: "Refund Amount",
}


@dataclass
class ColumnMapping:
    """Role -> column name, resolved once when a file is ingested."""

    columns: dict[Role, str] = field(default_factory=lambda: dict(DEFAULT_COLUMNS))

    @classmethod
    def with_overrides(cls, overrides: dict[Role, str] | None = None) -> "ColumnMapping":
        columns = dict(DEFAULT_COLUMNS)
        for role, name in (overrides or {}).items():
            columns[Role(role)] = name
        return cls(columns)

    def column_for(self, role: Role) -> str | None:
        name = self.columns.get(role)
        if name is None or not str(name).strip():
            return None
        return name

    def role_for(self, column: str) -> Role | None:
        for role, name in self.columns.items():
            if name == column:
                return role
        return None


@dataclass
class Record:
    order_id: str = ""
    item_name: str = ""
    recipient: str = ""
    quantity: str = ""
    order_total: str = ""
    shipping_paid: str = ""
    shipping_cost: str = ""
    total_shipping_paid: Decimal | None = None
    refund_amount: Decimal | None = None
    extras: dict[str, str] = field(default_factory=dict)
    is_totals: bool = False

    def text(self, role: Role) -> str:
        value = getattr(self, Role(role).value)
        if isinstance(value, Decimal) or value is None:
            return format_money(value)
        return value

    def set_text(self, role: Role, value: str) -> None:
        role = Role(role)
        if role in DERIVED_ROLES:
            raise ValueError(f"'{role.value}' is computed and cannot be edited")
        setattr(self, role.value, "" if value is None else str(value))

    def is_blank(self) -> bool:
        texts = [self.text(role) for role in ROLE_ORDER] + list(self.extras.values())
        return all(not text.strip() for text in texts)

    def is_totals_row(self) -> bool:
        return self.is_totals or self.order_id == TOTALS_SENTINEL

    def as_row(self, columns: list[str], mapping: ColumnMapping) -> dict[str, str]:
        row = {}
        for column in columns:
            role = mapping.role_for(column)
            row[column] = self.text(role) if role is not None else self.extras.get(column, "")
        return row
