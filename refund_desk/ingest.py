"""
Turn raw imported rows into canonical, sorted Records.

Structural problems (no rows, no recipient mapping, recipient column missing
from the header) raise. Row-level problems (blank rows, rows without a
recipient) are dropped and counted in the IngestReport.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

import pandas as pd

from refund_desk.currency import try_parse
from refund_desk.errors import IngestionError, MissingColumn
from refund_desk.records import (
    DERIVED_ROLES,
    ENSURED_ROLES,
    ROLE_ORDER,
    ColumnMapping,
    Record,
    Role,
)


@dataclass
class IngestReport:
    rows_in: int = 0
    rows_kept: int = 0
    dropped_empty: int = 0
    dropped_no_recipient: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "rows_in": self.rows_in,
            "rows_kept": self.rows_kept,
            "dropped_empty": self.dropped_empty,
            "dropped_no_recipient": self.dropped_no_recipient,
        }


@dataclass
class IngestResult:
    records: list[Record]
    columns: list[str]
    report: IngestReport = field(default_factory=IngestReport)


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    try:
        if pd.isna(value):
            return ""
    except (TypeError, ValueError):
        pass
    return str(value)


def _headers_from_rows(rows: list[Mapping[str, Any]]) -> list[str]:
    headers: list[str] = []
    seen: set[str] = set()
    for row in rows:
        for key in row.keys():
            if key not in seen:
                seen.add(key)
                headers.append(key)
    return headers


def resolve_columns(headers: Iterable[str], mapping: ColumnMapping) -> list[str]:
    """Source header order, followed by any ensured role column the source lacked."""
    columns = list(headers)
    for role in ENSURED_ROLES:
        name = mapping.column_for(role)
        if name and name not in columns:
            columns.append(name)
    return columns


def _record_from_row(row: Mapping[str, Any], mapping: ColumnMapping) -> Record:
    record = Record()
    mapped_columns = set()
    for role in ROLE_ORDER:
        column = mapping.column_for(role)
        if column is None:
            continue
        mapped_columns.add(column)
        text = _cell_text(row.get(column))
        if role in DERIVED_ROLES:
            # Previously computed values are re-derived later; keep what parses.
            setattr(record, role.value, try_parse(text) if text.strip() else None)
        else:
            setattr(record, role.value, text)
    record.extras = {
        key: _cell_text(value) for key, value in row.items() if key not in mapped_columns
    }
    return record


def _sort_key(record: Record) -> tuple[str, str]:
    return record.recipient, record.order_id


def ingest(
    rows: Iterable[Mapping[str, Any]],
    mapping: ColumnMapping | None = None,
    headers: Iterable[str] | None = None,
) -> IngestResult:
    mapping = mapping or ColumnMapping()
    rows = list(rows)
    if not rows:
        raise IngestionError("No rows to import: the file is empty or has only a header.")

    recipient_column = mapping.column_for(Role.RECIPIENT)
    if recipient_column is None:
        raise IngestionError("No column is mapped to the recipient role; cannot group orders.")

    header_list = list(headers) if headers is not None else _headers_from_rows(rows)
    if recipient_column not in header_list:
        raise MissingColumn(Role.RECIPIENT.value, recipient_column)

    report = IngestReport(rows_in=len(rows))
    kept: list[Record] = []
    for row in rows:
        record = _record_from_row(row, mapping)
        if record.is_blank():
            report.dropped_empty += 1
            continue
        if not record.recipient.strip():
            report.dropped_no_recipient += 1
            continue
        kept.append(record)

    kept.sort(key=_sort_key)
    report.rows_kept = len(kept)
    return IngestResult(records=kept, columns=resolve_columns(header_list, mapping), report=report)


def ingest_rows(
    rows: Iterable[Mapping[str, Any]],
    mapping: ColumnMapping | None = None,
    headers: Iterable[str] | None = None,
) -> list[Record]:
    return ingest(rows, mapping, headers).records


def ingest_frame(df: pd.DataFrame, mapping: ColumnMapping | None = None) -> IngestResult:
    headers = [str(column) for column in df.columns]
    frame = df.copy()
    frame.columns = headers
    rows = frame.to_dict(orient="records")
    return ingest(rows, mapping, headers)
