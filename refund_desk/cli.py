from __future__ import annotations

import argparse
import json
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from refund_desk import __version__ as TOOL_VERSION
from refund_desk.config import load_mapping, parse_column_overrides, write_starter_config
from refund_desk.errors import FormatError, IngestionError
from refund_desk.records import ColumnMapping
from refund_desk.session import RefundSession
from refund_desk.summary import build_refund_summary, build_stats_payload, flag_counts

EXIT_SUCCESS = 0
EXIT_COMMAND_ERROR = 1
EXIT_PARSE_FAILED = 2
EXIT_FLAGGED = 3


class CliError(Exception):
    def __init__(self, message: str, code: int = EXIT_COMMAND_ERROR) -> None:
        super().__init__(message)
        self.code = code


class RefundDeskArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> None:
        raise CliError(message, EXIT_COMMAND_ERROR)


def eprint(message: str) -> None:
    print(message, file=sys.stderr)


def emit_human(message: str, *, quiet: bool = False) -> None:
    if not quiet:
        eprint(message)


def json_dumps(payload: Any) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False, sort_keys=True)


def timestamp_token() -> str:
    override = os.environ.get("REFUND_DESK_OUTPUT_STAMP")
    if override:
        return override
    return datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def determine_output_dir(args: argparse.Namespace, input_path: Path) -> Path:
    if getattr(args, "out_dir", None):
        return Path(args.out_dir)
    return Path.cwd() / "refund-desk-output" / f"{input_path.stem}-{timestamp_token()}"


def write_text(path: Path, payload: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(payload, encoding="utf-8")


def write_json(path: Path, payload: Any) -> None:
    write_text(path, json_dumps(payload))


def safe_output_path(path: Path) -> Path:
    if path.exists():
        raise CliError(f"Refusing to overwrite existing output: {path}", EXIT_COMMAND_ERROR)
    return path


def classify_exception(exc: Exception) -> int:
    if isinstance(exc, CliError):
        return exc.code
    if isinstance(exc, (IngestionError, FormatError, UnicodeDecodeError)):
        return EXIT_PARSE_FAILED
    if isinstance(exc, FileNotFoundError):
        return EXIT_COMMAND_ERROR
    if isinstance(exc, ValueError):
        return EXIT_PARSE_FAILED
    return EXIT_COMMAND_ERROR


def resolve_mapping(args: argparse.Namespace) -> ColumnMapping:
    try:
        mapping = load_mapping(Path(args.config)) if args.config else ColumnMapping()
        overrides = parse_column_overrides(args.columns)
    except (FileNotFoundError, ValueError) as exc:
        raise CliError(str(exc), EXIT_COMMAND_ERROR) from exc
    mapping.columns.update(overrides)
    return mapping


def load_session(args: argparse.Namespace, input_path: Path) -> RefundSession:
    session = RefundSession(mapping=resolve_mapping(args), top_n=getattr(args, "top", 5))
    return session.load_file(input_path)


def render_ingest_text(session: RefundSession) -> str:
    report = session.report
    lines = [
        "refund-desk refunds",
        f"File: {session.source_name or '[unknown]'}",
        f"Rows read: {report.rows_in}",
        f"Rows kept: {report.rows_kept}",
        f"Dropped (empty): {report.dropped_empty}",
        f"Dropped (no recipient): {report.dropped_no_recipient}",
        f"Recipients: {session.customers.total_customers}",
        f"Total refund: {session.summary.refund_sum}",
    ]
    flags = flag_counts(session)
    if flags:
        lines.append("Flagged cells:")
        lines.extend(f"  {name}: {count}" for name, count in flags.items())
    for warning in session.warnings:
        lines.append(f"Warning: {warning}")
    return "\n".join(lines) + "\n"


def render_stats_text(session: RefundSession) -> str:
    pairs = session.summary.rows() + session.customers.rows()
    width = max(len(label) for label, _ in pairs)
    lines = ["refund-desk stats", f"File: {session.source_name or '[unknown]'}"]
    lines.extend(f"{label:<{width}}  {value}" for label, value in pairs)
    return "\n".join(lines) + "\n"


def add_mapping_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", help="JSON column-mapping config (see `refund-desk config init`)")
    parser.add_argument(
        "--column",
        dest="columns",
        action="append",
        metavar="ROLE=NAME",
        help="Override one column mapping, e.g. --column recipient='Ship To'",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = RefundDeskArgumentParser(prog="refund-desk", description="Shipping refund reconciliation for order CSVs.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    refunds = subparsers.add_parser("refunds", help="Compute per-recipient refunds and write the purchases file.")
    refunds.add_argument("input", help="Input order export (.csv/.tsv/.txt)")
    refunds.add_argument("-o", "--out", dest="out_dir", help="Output directory")
    refunds.add_argument("--output", help="Explicit purchases output path")
    refunds.add_argument("--format", choices=["csv", "xlsx"], default="csv", help="Purchases output format")
    refunds.add_argument("--json", action="store_true", help="Write machine JSON to stdout")
    refunds.add_argument("--fail-on-flags", action="store_true", help="Return exit code 3 when any cell is flagged")
    refunds.add_argument("-q", "--quiet", action="store_true", help="Minimal human logs")
    add_mapping_arguments(refunds)

    stats = subparsers.add_parser("stats", help="Print order and customer statistics.")
    stats.add_argument("input", help="Input order export (.csv/.tsv/.txt)")
    stats.add_argument("--output", help="Write a Metric,Value CSV to this path")
    stats.add_argument("--top", type=int, default=5, help="Number of top customers to list")
    stats.add_argument("--json", action="store_true", help="Write machine JSON to stdout")
    stats.add_argument("-q", "--quiet", action="store_true", help="Minimal human logs")
    add_mapping_arguments(stats)

    config = subparsers.add_parser("config", help="Generate configuration.")
    config_subparsers = config.add_subparsers(dest="config_command", required=True)
    config_init = config_subparsers.add_parser("init", help="Write a starter column-mapping config.")
    config_init.add_argument("--path", default="refund-desk.json", help="Config output path")

    subparsers.add_parser("version", help="Print version")
    return parser


def maybe_emit_json_stdout(payload: Any, enabled: bool) -> None:
    if enabled:
        print(json_dumps(payload))


def run_refunds(args: argparse.Namespace) -> int:
    input_path = Path(args.input)
    if not input_path.exists():
        eprint(f"File not found: {input_path}")
        return EXIT_COMMAND_ERROR

    try:
        out_dir = determine_output_dir(args, input_path)
        suffix = ".xlsx" if args.format == "xlsx" else ".csv"
        output_path = safe_output_path(
            Path(args.output) if args.output else out_dir / f"{input_path.stem}-refunds{suffix}"
        )
        summary_path = safe_output_path(out_dir / "refund-summary.json")

        session = load_session(args, input_path)
        if args.format == "xlsx":
            session.export_workbook(output_path)
        else:
            session.export_purchases(output_path)

        summary = build_refund_summary(session, input_path=input_path, output_path=output_path)
        write_json(summary_path, summary)
        if args.json:
            maybe_emit_json_stdout(summary, True)
        else:
            emit_human(render_ingest_text(session).rstrip(), quiet=args.quiet)
            emit_human(f"Purchases written: {output_path}", quiet=args.quiet)
            emit_human(f"Refund summary: {summary_path}", quiet=args.quiet)
        if args.fail_on_flags and summary["flags"]:
            return EXIT_FLAGGED
        return EXIT_SUCCESS
    except Exception as exc:
        eprint(str(exc))
        return classify_exception(exc)


def run_stats(args: argparse.Namespace) -> int:
    input_path = Path(args.input)
    if not input_path.exists():
        eprint(f"File not found: {input_path}")
        return EXIT_COMMAND_ERROR

    try:
        if args.top < 1:
            raise CliError("--top must be at least 1", EXIT_COMMAND_ERROR)
        output_path = safe_output_path(Path(args.output)) if args.output else None
        session = load_session(args, input_path)
        session.export_stats(output_path)
        payload = build_stats_payload(session, input_path=input_path, output_path=output_path)
        if args.json:
            maybe_emit_json_stdout(payload, True)
        else:
            emit_human(render_stats_text(session).rstrip(), quiet=args.quiet)
            if output_path:
                emit_human(f"Statistics written: {output_path}", quiet=args.quiet)
        return EXIT_SUCCESS
    except Exception as exc:
        eprint(str(exc))
        return classify_exception(exc)


def run_config_init(args: argparse.Namespace) -> int:
    config_path = Path(args.path)
    if config_path.exists():
        eprint(f"Refusing to overwrite existing config: {config_path}")
        return EXIT_COMMAND_ERROR
    write_starter_config(config_path)
    emit_human(f"Config written: {config_path}")
    return EXIT_SUCCESS


def run_version() -> int:
    print(TOOL_VERSION)
    return EXIT_SUCCESS


def main(argv: list[str] | None = None) -> int:
    try:
        parser = build_parser()
        args = parser.parse_args(argv)
        if args.command == "refunds":
            return run_refunds(args)
        if args.command == "stats":
            return run_stats(args)
        if args.command == "config":
            if args.config_command == "init":
                return run_config_init(args)
        if args.command == "version":
            return run_version()
        raise CliError(f"Unknown command: {args.command}", EXIT_COMMAND_ERROR)
    except CliError as exc:
        eprint(str(exc))
        return exc.code


if __name__ == "__main__":
    raise SystemExit(main())
