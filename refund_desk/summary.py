from __future__ import annotations

from collections import Counter
from pathlib import Path
from typing import Any

from refund_desk import __version__ as TOOL_VERSION
from refund_desk.classify import FLAGGED_CATEGORIES, classify_records
from refund_desk.config import mapping_to_payload
from refund_desk.contracts import build_run_summary, contract_for_command
from refund_desk.refunds import group_by_recipient
from refund_desk.session import RefundSession


def flag_counts(session: RefundSession) -> dict[str, int]:
    counts = Counter(
        category.value
        for row in classify_records(session.records)
        for category in row.values()
        if category in FLAGGED_CATEGORIES
    )
    return dict(sorted(counts.items()))


def build_refund_summary(
    session: RefundSession,
    *,
    input_path: Path,
    output_path: Path | None,
) -> dict[str, Any]:
    contract = contract_for_command("refunds")
    groups = group_by_recipient(session.records)
    flags = flag_counts(session)
    refunded_groups = sum(1 for group in groups if group.refund is not None and group.refund > 0)
    return {
        "contract": contract,
        "schema_version": contract["version"],
        "tool_version": TOOL_VERSION,
        "input_file": str(input_path),
        "output_file": str(output_path) if output_path else None,
        "columns": mapping_to_payload(session.mapping)["columns"],
        "rows": session.report.to_dict(),
        "groups": {
            "recipients": len(groups),
            "with_refund": refunded_groups,
            "without_shipping_data": sum(1 for group in groups if group.refund is None),
        },
        "flags": flags,
        "statistics": {
            "summary": session.summary.to_dict(),
            "customers": session.customers.to_dict(),
        },
        "run_summary": build_run_summary(
            command="refunds",
            input_path=input_path,
            output_path=output_path,
            rows=session.report.to_dict(),
            flagged_cells=sum(flags.values()),
            warnings=session.warnings,
            metrics={
                "recipients": len(groups),
                "refund_total": str(session.summary.refund_sum),
            },
        ),
    }


def build_stats_payload(session: RefundSession, *, input_path: Path, output_path: Path | None) -> dict[str, Any]:
    contract = contract_for_command("stats")
    return {
        "contract": contract,
        "schema_version": contract["version"],
        "tool_version": TOOL_VERSION,
        "summary": session.summary.to_dict(),
        "customers": session.customers.to_dict(),
        "metrics": [
            {"metric": label, "value": value}
            for label, value in session.summary.rows() + session.customers.rows()
        ],
        "run_summary": build_run_summary(
            command="stats",
            input_path=input_path,
            output_path=output_path,
            rows=session.report.to_dict(),
            flagged_cells=session.flagged_count(),
            warnings=session.warnings,
            metrics={"orders": session.summary.order_count, "customers": session.customers.total_customers},
        ),
    }
