"""Versioned contracts for refund-desk JSON outputs, one per command."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any

TOOL_NAME = "refund-desk"

CONTRACT_VERSIONS = {
    "refund_desk.refund_summary": "1.0.0",
    "refund_desk.statistics": "1.0.0",
}

COMMAND_CONTRACTS = {
    "refunds": "refund_desk.refund_summary",
    "stats": "refund_desk.statistics",
}


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def build_contract(name: str) -> dict[str, str]:
    return {"name": name, "version": CONTRACT_VERSIONS[name]}


def contract_for_command(command: str) -> dict[str, str]:
    name = COMMAND_CONTRACTS.get(command)
    if name is None:
        raise ValueError(f"No output contract for command '{command}'")
    return build_contract(name)


def run_status(flagged_cells: int, warnings: list[str]) -> str:
    """'flagged' beats 'warnings' beats 'ok'."""
    if flagged_cells:
        return "flagged"
    if warnings:
        return "warnings"
    return "ok"


def build_run_summary(
    *,
    command: str,
    input_path: Path,
    output_path: Path | None = None,
    rows: dict[str, int] | None = None,
    flagged_cells: int = 0,
    metrics: dict[str, Any] | None = None,
    warnings: list[str] | None = None,
) -> dict[str, Any]:
    warnings = list(warnings or [])
    return {
        "tool": TOOL_NAME,
        "command": command,
        "contract": contract_for_command(command)["name"],
        "status": run_status(flagged_cells, warnings),
        "generated_at": utc_now_iso(),
        "input_file": str(input_path),
        "output_file": str(output_path) if output_path else None,
        "rows": dict(rows or {}),
        "flagged_cells": flagged_cells,
        "warnings_count": len(warnings),
        "warnings": warnings,
        "metrics": metrics or {},
    }
