"""
RefundSession holds the one active record collection and everything derived
from it. UI and CLI code pass the session around instead of sharing globals.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Mapping

from refund_desk import exporter
from refund_desk.classify import CellCategory, classify_cell, flagged_cells
from refund_desk.currency import parse_or_zero
from refund_desk.ingest import IngestReport, ingest, ingest_frame
from refund_desk.loader import load_file
from refund_desk.records import DERIVED_ROLES, NUMERIC_ROLES, ColumnMapping, Record, Role
from refund_desk.refunds import compute_refunds, is_group_first
from refund_desk.stats import (
    TOP_CUSTOMERS,
    CustomerStatistics,
    SummaryStatistics,
    customer_statistics,
    summary_statistics,
)
from refund_desk.totals import append_totals


@dataclass
class RefundSession:
    mapping: ColumnMapping = field(default_factory=ColumnMapping)
    columns: list[str] = field(default_factory=list)
    records: list[Record] = field(default_factory=list)
    summary: SummaryStatistics = field(default_factory=SummaryStatistics)
    customers: CustomerStatistics = field(default_factory=CustomerStatistics)
    report: IngestReport = field(default_factory=IngestReport)
    source_name: str | None = None
    warnings: list[str] = field(default_factory=list)
    top_n: int = TOP_CUSTOMERS

    # ── Loading ────────────────────────────────────────────────────────────

    def load_rows(
        self,
        rows: Iterable[Mapping[str, Any]],
        headers: Iterable[str] | None = None,
        *,
        source_name: str | None = None,
    ) -> "RefundSession":
        result = ingest(rows, self.mapping, headers)
        self.records = result.records
        self.columns = result.columns
        self.report = result.report
        self.source_name = source_name
        self.warnings = []
        return self.recompute()

    def load_file(self, path: str | Path | None) -> "RefundSession":
        """Replace the session contents with a file; None means the user cancelled."""
        if path is None:
            return self
        path = Path(path)
        loaded = load_file(path)
        self._apply_loaded(loaded, path.name)
        return self

    def load_loaded(self, loaded: dict, source_name: str | None = None) -> "RefundSession":
        self._apply_loaded(loaded, source_name)
        return self

    def _apply_loaded(self, loaded: dict, source_name: str | None) -> None:
        result = ingest_frame(loaded["dataframe"], self.mapping)
        self.records = result.records
        self.columns = result.columns
        self.report = result.report
        self.source_name = source_name
        self.warnings = list(loaded.get("warnings") or [])
        self.recompute()

    # ── Derived data ───────────────────────────────────────────────────────

    def recompute(self) -> "RefundSession":
        compute_refunds(self.records)
        append_totals(self.records)
        self.summary = summary_statistics(self.records)
        self.customers = customer_statistics(self.records, self.top_n)
        return self

    @property
    def data_records(self) -> list[Record]:
        return [record for record in self.records if not record.is_totals_row()]

    def flagged_count(self) -> int:
        return flagged_cells(self.records)

    # ── Cell access ────────────────────────────────────────────────────────

    def cell_view(self, index: int, role: Role) -> tuple[str, CellCategory]:
        record = self.records[index]
        first = is_group_first(self.records)[index]
        return record.text(role), classify_cell(record, role, group_first=first)

    def update_cell(self, index: int, role: Role, text: str) -> None:
        """Edit one text cell. Numeric columns must parse; derived columns are read-only."""
        role = Role(role)
        record = self.records[index]
        if record.is_totals_row():
            raise ValueError("The totals row is computed and cannot be edited")
        if role in DERIVED_ROLES:
            raise ValueError(f"'{self.mapping.column_for(role) or role.value}' is computed and cannot be edited")
        if role in NUMERIC_ROLES:
            parse_or_zero(text, field=self.mapping.column_for(role) or role.value)
        record.set_text(role, text)

    # ── Snapshots (cancelled dialogs leave state untouched) ────────────────

    def snapshot(self) -> "RefundSession":
        return copy.deepcopy(self)

    def restore(self, snapshot: "RefundSession") -> None:
        state = copy.deepcopy(snapshot)
        self.__dict__.update(state.__dict__)

    # ── Export ─────────────────────────────────────────────────────────────

    def purchases_csv(self) -> str:
        return exporter.purchases_csv_text(self.records, self.columns, self.mapping)

    def stats_csv(self) -> str:
        return exporter.stats_csv_text(self.summary, self.customers)

    def workbook_bytes(self) -> bytes:
        return exporter.workbook_bytes(self.records, self.columns, self.mapping, self.summary, self.customers)

    def export_purchases(self, path: str | Path | None) -> Path | None:
        if path is None:
            return None
        path = Path(path)
        exporter.write_purchases_csv(self.records, self.columns, self.mapping, path)
        return path

    def export_stats(self, path: str | Path | None) -> Path | None:
        if path is None:
            return None
        path = Path(path)
        exporter.write_stats_csv(self.summary, self.customers, path)
        return path

    def export_workbook(self, path: str | Path | None) -> Path | None:
        if path is None:
            return None
        path = Path(path)
        exporter.write_workbook(self.records, self.columns, self.mapping, self.summary, self.customers, path)
        return path
