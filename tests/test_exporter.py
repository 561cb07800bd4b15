from __future__ import annotations

import io
import unittest
from pathlib import Path

import openpyxl

from refund_desk import exporter
from refund_desk.ingest import ingest_frame
from refund_desk.loader import read_text_table
from refund_desk.records import TEXT_ROLES
from refund_desk.session import RefundSession

ROOT = Path(__file__).resolve().parents[1]
SAMPLE = ROOT / "sample-data" / "orders_sample.csv"


class PurchasesExportTests(unittest.TestCase):
    def setUp(self):
        self.session = RefundSession().load_file(SAMPLE)

    def test_csv_keeps_source_column_order_and_appends_derived_columns(self):
        header = self.session.purchases_csv().splitlines()[0]
        self.assertEqual(
            header,
            "Order ID,Item Name,Recipient,Quantity,Order Total,Shipping Paid,Shipping Cost,Notes,"
            "Total Shipping Paid,Refund Amount",
        )

    def test_derived_values_render_with_two_decimals_and_blanks(self):
        lines = self.session.purchases_csv().splitlines()
        self.assertTrue(lines[1].endswith(",gift wrap,15.00,11.00"))
        self.assertTrue(lines[2].endswith(",,"))
        self.assertTrue(lines[-1].startswith("TOTAL,"))

    def test_reimport_reproduces_text_fields_and_drops_total_row(self):
        original = self.session.data_records
        frame = read_text_table(self.session.purchases_csv())
        result = ingest_frame(frame)
        self.assertEqual(result.report.dropped_no_recipient, 1)
        self.assertEqual(len(result.records), len(original))
        for before, after in zip(original, result.records):
            for role in TEXT_ROLES:
                self.assertEqual(after.text(role), before.text(role))
            self.assertEqual(after.extras, before.extras)


class StatisticsExportTests(unittest.TestCase):
    def test_stats_csv_is_metric_value_pairs(self):
        session = RefundSession().load_file(SAMPLE)
        lines = session.stats_csv().splitlines()
        self.assertEqual(lines[0], "Metric,Value")
        self.assertIn("Total Orders,6", lines)
        self.assertIn("Average Order Value,190.92", lines)
        self.assertIn("Top Customer 1,Alice Moreno (2)", lines)


class WorkbookExportTests(unittest.TestCase):
    def test_workbook_has_highlighted_purchases_and_statistics_sheets(self):
        session = RefundSession().load_file(SAMPLE)
        wb = exporter.build_workbook(
            session.records, session.columns, session.mapping, session.summary, session.customers
        )
        self.assertEqual(wb.sheetnames, ["Purchases", "Statistics"])
        purchases = wb["Purchases"]
        self.assertEqual([cell.value for cell in purchases[1]], session.columns)
        refund_col = session.columns.index("Refund Amount") + 1
        self.assertEqual(purchases.cell(2, refund_col).value, "11.00")
        self.assertTrue(purchases.cell(2, refund_col).fill.fgColor.rgb.endswith("C8E6C9"))
        self.assertEqual(purchases.cell(purchases.max_row, 1).value, "TOTAL")
        self.assertTrue(purchases.cell(purchases.max_row, 1).font.bold)
        self.assertEqual(wb["Statistics"]["A1"].value, "Metric")

    def test_workbook_bytes_open_with_openpyxl(self):
        session = RefundSession().load_file(SAMPLE)
        wb = openpyxl.load_workbook(io.BytesIO(session.workbook_bytes()))
        self.assertEqual(wb["Statistics"].max_row, len(session.summary.rows() + session.customers.rows()) + 1)


if __name__ == "__main__":
    unittest.main()
