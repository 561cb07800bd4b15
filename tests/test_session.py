from __future__ import annotations

import tempfile
import unittest
from decimal import Decimal
from pathlib import Path

from refund_desk.classify import CellCategory
from refund_desk.errors import FormatError, IngestionError
from refund_desk.records import ColumnMapping, Role
from refund_desk.session import RefundSession

ROOT = Path(__file__).resolve().parents[1]
SAMPLE = ROOT / "sample-data" / "orders_sample.csv"

HEADERS = ["Order ID", "Recipient", "Shipping Paid", "Shipping Cost"]
ROWS = [
    {"Order ID": "1", "Recipient": "Alice", "Shipping Paid": "$10", "Shipping Cost": "$4"},
    {"Order ID": "2", "Recipient": "Alice", "Shipping Paid": "$5", "Shipping Cost": "$0"},
    {"Order ID": "3", "Recipient": "Bob", "Shipping Paid": "$8", "Shipping Cost": "$9.50"},
]


def loaded_session() -> RefundSession:
    return RefundSession().load_rows(ROWS, HEADERS, source_name="orders.csv")


class SessionLoadTests(unittest.TestCase):
    def test_load_rows_computes_refunds_totals_and_stats(self):
        session = loaded_session()
        self.assertEqual(len(session.records), 4)
        self.assertTrue(session.records[-1].is_totals_row())
        self.assertEqual(session.records[0].refund_amount, Decimal("11"))
        self.assertEqual(session.records[2].refund_amount, Decimal("-1.50"))
        self.assertEqual(session.summary.refund_sum, Decimal("9.50"))
        self.assertEqual(session.customers.total_customers, 2)
        self.assertEqual(len(session.data_records), 3)

    def test_load_sample_file(self):
        session = RefundSession().load_file(SAMPLE)
        self.assertEqual(session.source_name, "orders_sample.csv")
        self.assertEqual(session.report.rows_kept, 6)
        self.assertEqual(session.report.dropped_empty, 1)
        self.assertEqual(session.report.dropped_no_recipient, 1)
        self.assertEqual(
            [(r.recipient, r.order_id) for r in session.data_records],
            [
                ("Alice Moreno", "1001"),
                ("Alice Moreno", "1003"),
                ("Bob Tran", "1002"),
                ("Bob Tran", "1007"),
                ("Carla Diaz", "1004"),
                ("Dev Patel", "1006"),
            ],
        )
        totals = session.records[-1]
        self.assertEqual(totals.order_total, "1145.50")
        self.assertEqual(totals.refund_amount, Decimal("6.25"))
        self.assertEqual(session.summary.order_total_avg, Decimal("190.92"))
        self.assertEqual(session.customers.repeat_rate, Decimal("50.00"))
        self.assertEqual(session.flagged_count(), 5)

    def test_cancelled_load_is_a_no_op(self):
        session = loaded_session()
        before = session.snapshot()
        session.load_file(None)
        self.assertEqual(session, before)

    def test_failed_load_leaves_state_unchanged(self):
        session = loaded_session()
        before = session.snapshot()
        with self.assertRaises(IngestionError):
            session.load_rows([])
        with self.assertRaises(FileNotFoundError):
            session.load_file(ROOT / "does-not-exist.csv")
        self.assertEqual(session, before)

    def test_mapping_is_applied_on_load(self):
        session = RefundSession(mapping=ColumnMapping.with_overrides({Role.RECIPIENT: "Ship To"}))
        session.load_rows([{"Order ID": "1", "Ship To": "Alice"}], ["Order ID", "Ship To"])
        self.assertEqual(session.records[0].recipient, "Alice")


class SessionEditTests(unittest.TestCase):
    def test_cell_view_returns_text_and_category(self):
        session = loaded_session()
        self.assertEqual(session.cell_view(0, Role.REFUND_AMOUNT), ("11.00", CellCategory.REFUND_VALID))
        self.assertEqual(session.cell_view(1, Role.REFUND_AMOUNT), ("", CellCategory.NORMAL))
        self.assertEqual(session.cell_view(3, Role.ORDER_ID), ("TOTAL", CellCategory.TOTALS))

    def test_update_numeric_cell_rejects_unparseable_text(self):
        session = loaded_session()
        with self.assertRaises(FormatError) as ctx:
            session.update_cell(0, Role.SHIPPING_PAID, "ten dollars")
        self.assertEqual(ctx.exception.field, "Shipping Paid")
        self.assertEqual(session.records[0].shipping_paid, "$10")

    def test_update_then_recompute(self):
        session = loaded_session()
        session.update_cell(2, Role.SHIPPING_PAID, "$12.00")
        session.update_cell(2, Role.ITEM_NAME, "anything goes")
        session.recompute()
        self.assertEqual(session.records[2].refund_amount, Decimal("2.50"))
        self.assertEqual(session.records[-1].refund_amount, Decimal("13.50"))
        self.assertEqual(sum(1 for r in session.records if r.is_totals_row()), 1)

    def test_derived_cells_and_totals_row_are_read_only(self):
        session = loaded_session()
        with self.assertRaises(ValueError):
            session.update_cell(0, Role.REFUND_AMOUNT, "1.00")
        with self.assertRaises(ValueError):
            session.update_cell(0, Role.TOTAL_SHIPPING_PAID, "1.00")
        with self.assertRaises(ValueError):
            session.update_cell(3, Role.ITEM_NAME, "edited")

    def test_restore_rolls_back_edits(self):
        session = loaded_session()
        snapshot = session.snapshot()
        session.update_cell(0, Role.SHIPPING_COST, "$99")
        session.recompute()
        session.restore(snapshot)
        self.assertEqual(session.records[0].shipping_cost, "$4")
        self.assertEqual(session.records[0].refund_amount, Decimal("11"))


class SessionExportTests(unittest.TestCase):
    def test_cancelled_exports_write_nothing(self):
        session = loaded_session()
        self.assertIsNone(session.export_purchases(None))
        self.assertIsNone(session.export_stats(None))
        self.assertIsNone(session.export_workbook(None))

    def test_exports_write_files(self):
        session = loaded_session()
        with tempfile.TemporaryDirectory() as tmpdir:
            purchases = session.export_purchases(Path(tmpdir) / "out" / "purchases.csv")
            stats = session.export_stats(Path(tmpdir) / "stats.csv")
            workbook = session.export_workbook(Path(tmpdir) / "refunds.xlsx")
            self.assertTrue(purchases.exists())
            self.assertTrue(stats.read_text(encoding="utf-8").startswith("Metric,Value\n"))
            self.assertGreater(workbook.stat().st_size, 0)


if __name__ == "__main__":
    unittest.main()
