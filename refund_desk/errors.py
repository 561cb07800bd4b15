"""Error kinds raised by the refund engine."""

from __future__ import annotations


class RefundDeskError(Exception):
    pass


class FormatError(RefundDeskError, ValueError):
    """A value could not be parsed as currency where a strict parse was required."""

    def __init__(self, value: object, field: str | None = None) -> None:
        self.value = value
        self.field = field
        where = f" in field '{field}'" if field else ""
        super().__init__(f"Could not parse {value!r} as a currency amount{where}")


class IngestionError(RefundDeskError, ValueError):
    pass


class MissingColumn(IngestionError):
    def __init__(self, role: str, column: str | None = None) -> None:
        self.role = role
        self.column = column
        if column:
            message = f"Column '{column}' mapped to role '{role}' was not found in the file header"
        else:
            message = f"Role '{role}' is not mapped to any column"
        super().__init__(message)
