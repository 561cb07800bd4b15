from __future__ import annotations

import json
import unittest
from pathlib import Path

from refund_desk import __version__
from refund_desk.contracts import (
    COMMAND_CONTRACTS,
    CONTRACT_VERSIONS,
    build_contract,
    build_run_summary,
    contract_for_command,
)
from refund_desk.session import RefundSession
from refund_desk.summary import build_refund_summary, build_stats_payload, flag_counts

ROOT = Path(__file__).resolve().parents[1]
SAMPLE_CSV = ROOT / "sample-data" / "orders_sample.csv"


class ContractTests(unittest.TestCase):
    def setUp(self):
        self.session = RefundSession().load_file(SAMPLE_CSV)

    def test_contract_names_resolve_to_versions(self):
        for name, version in CONTRACT_VERSIONS.items():
            self.assertEqual(build_contract(name), {"name": name, "version": version})
        with self.assertRaises(KeyError):
            build_contract("refund_desk.unknown")

    def test_every_command_has_a_contract(self):
        for command, name in COMMAND_CONTRACTS.items():
            self.assertEqual(contract_for_command(command)["name"], name)
        with self.assertRaisesRegex(ValueError, "config"):
            contract_for_command("config")

    def test_run_summary_status_follows_flags_then_warnings(self):
        clean = build_run_summary(command="stats", input_path=SAMPLE_CSV)
        warned = build_run_summary(command="refunds", input_path=SAMPLE_CSV, warnings=["a", "b"])
        flagged = build_run_summary(command="refunds", input_path=SAMPLE_CSV, flagged_cells=3, warnings=["a"])
        self.assertEqual(clean["status"], "ok")
        self.assertEqual(clean["contract"], "refund_desk.statistics")
        self.assertEqual(warned["status"], "warnings")
        self.assertEqual(warned["warnings_count"], 2)
        self.assertEqual(flagged["status"], "flagged")
        self.assertEqual(flagged["flagged_cells"], 3)
        self.assertEqual(warned["tool"], "refund-desk")
        self.assertIsNone(warned["output_file"])
        self.assertEqual(warned["rows"], {})
        self.assertTrue(warned["generated_at"].endswith("Z"))

    def test_refund_summary_emits_versioned_contract_and_run_summary(self):
        output_path = Path("out") / "orders_sample-refunds.csv"
        summary = build_refund_summary(self.session, input_path=SAMPLE_CSV, output_path=output_path)
        self.assertEqual(summary["contract"]["name"], "refund_desk.refund_summary")
        self.assertEqual(summary["schema_version"], summary["contract"]["version"])
        self.assertEqual(summary["tool_version"], __version__)
        self.assertEqual(summary["rows"]["rows_kept"], 6)
        self.assertEqual(summary["groups"], {"recipients": 4, "with_refund": 2, "without_shipping_data": 1})
        run = summary["run_summary"]
        self.assertEqual(run["command"], "refunds")
        self.assertEqual(run["contract"], "refund_desk.refund_summary")
        self.assertEqual(run["status"], "flagged")
        self.assertEqual(run["flagged_cells"], 5)
        self.assertEqual(run["rows"]["dropped_no_recipient"], 1)
        self.assertEqual(run["metrics"]["refund_total"], "6.25")
        self.assertEqual(summary["statistics"]["customers"]["top_customers"][0]["recipient"], "Alice Moreno")
        json.dumps(summary)

    def test_flag_counts_by_category(self):
        self.assertEqual(
            flag_counts(self.session),
            {
                "missing_shipping_cost": 1,
                "missing_shipping_paid": 2,
                "refund_zero_or_negative": 2,
            },
        )

    def test_stats_payload_lists_metrics_in_order(self):
        payload = build_stats_payload(self.session, input_path=SAMPLE_CSV, output_path=None)
        self.assertEqual(payload["contract"]["name"], "refund_desk.statistics")
        self.assertEqual(payload["metrics"][0], {"metric": "Total Orders", "value": "6"})
        self.assertEqual(payload["summary"]["refund_rate"], "33.33")
        self.assertEqual(payload["run_summary"]["metrics"], {"orders": 6, "customers": 4})
        json.dumps(payload)


if __name__ == "__main__":
    unittest.main()
