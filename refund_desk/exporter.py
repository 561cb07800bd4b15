from __future__ import annotations

import io
from pathlib import Path

import openpyxl
import pandas as pd
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

from refund_desk.classify import CATEGORY_COLORS, classify_records
from refund_desk.records import ColumnMapping, Record
from refund_desk.stats import CustomerStatistics, SummaryStatistics

STATS_HEADERS = ["Metric", "Value"]


def purchases_frame(records: list[Record], columns: list[str], mapping: ColumnMapping) -> pd.DataFrame:
    return pd.DataFrame(
        [record.as_row(columns, mapping) for record in records],
        columns=columns,
        dtype=str,
    )


def stats_frame(summary: SummaryStatistics, customers: CustomerStatistics) -> pd.DataFrame:
    return pd.DataFrame(summary.rows() + customers.rows(), columns=STATS_HEADERS)


def purchases_csv_text(records: list[Record], columns: list[str], mapping: ColumnMapping) -> str:
    return purchases_frame(records, columns, mapping).to_csv(index=False, lineterminator="\n")


def stats_csv_text(summary: SummaryStatistics, customers: CustomerStatistics) -> str:
    return stats_frame(summary, customers).to_csv(index=False, lineterminator="\n")


def write_purchases_csv(records: list[Record], columns: list[str], mapping: ColumnMapping, output_path: Path) -> None:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(purchases_csv_text(records, columns, mapping), encoding="utf-8")


def write_stats_csv(summary: SummaryStatistics, customers: CustomerStatistics, output_path: Path) -> None:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(stats_csv_text(summary, customers), encoding="utf-8")


# ── Workbook ───────────────────────────────────────────────────────────────────

def _style_sheet(ws, col_widths: list[int], header_color: str):
    """Apply bold header, color, frozen row, and column widths."""
    fill = PatternFill("solid", fgColor=header_color)
    font = Font(bold=True, color="FFFFFF")
    for cell in ws[1]:
        cell.font = font
        cell.fill = fill
        cell.alignment = Alignment(horizontal="center", vertical="center", wrap_text=False)
    ws.freeze_panes = "A2"
    for i, width in enumerate(col_widths, start=1):
        ws.column_dimensions[get_column_letter(i)].width = width


def _infer_col_widths(rows: list[list], min_width: int = 10, max_width: int = 60, sample: int = 300) -> list[int]:
    if not rows:
        return []
    widths = [max(min_width, min(max_width, len(str(v)) + 2)) for v in rows[0]]
    for row in rows[1 : sample + 1]:
        for i, val in enumerate(row):
            widths[i] = max(widths[i], min(max_width, len(str(val)) + 2))
    return widths


def build_workbook(
    records: list[Record],
    columns: list[str],
    mapping: ColumnMapping,
    summary: SummaryStatistics,
    customers: CustomerStatistics,
) -> openpyxl.Workbook:
    wb = openpyxl.Workbook()

    # ── Sheet 1: Purchases, cells filled by highlight category ─────────────
    ws1 = wb.active
    ws1.title = "Purchases"
    ws1.append(columns)
    rows_for_width = [columns]
    grid = classify_records(records)
    for record, categories in zip(records, grid):
        row_out = [record.as_row(columns, mapping)[column] for column in columns]
        ws1.append(row_out)
        rows_for_width.append(row_out)
        last = ws1.max_row
        for col_idx, column in enumerate(columns, start=1):
            role = mapping.role_for(column)
            category = categories.get(role) if role is not None else None
            color = CATEGORY_COLORS.get(category) if category is not None else None
            if color:
                ws1.cell(last, col_idx).fill = PatternFill("solid", fgColor=color)
        if record.is_totals_row():
            for cell in ws1[last]:
                cell.font = Font(bold=True)
    _style_sheet(ws1, _infer_col_widths(rows_for_width), "4CAF50")   # green

    # ── Sheet 2: Statistics ─────────────────────────────────────────────────
    ws2 = wb.create_sheet("Statistics")
    stats_rows = [STATS_HEADERS] + [list(pair) for pair in summary.rows() + customers.rows()]
    for row_out in stats_rows:
        ws2.append(row_out)
    _style_sheet(ws2, _infer_col_widths(stats_rows), "1565C0")   # blue

    return wb


def write_workbook(
    records: list[Record],
    columns: list[str],
    mapping: ColumnMapping,
    summary: SummaryStatistics,
    customers: CustomerStatistics,
    output_path: Path,
) -> None:
    wb = build_workbook(records, columns, mapping, summary, customers)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    wb.save(output_path)


def workbook_bytes(
    records: list[Record],
    columns: list[str],
    mapping: ColumnMapping,
    summary: SummaryStatistics,
    customers: CustomerStatistics,
) -> bytes:
    buffer = io.BytesIO()
    build_workbook(records, columns, mapping, summary, customers).save(buffer)
    return buffer.getvalue()
