"""Column-mapping configuration files."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from refund_desk.records import DEFAULT_COLUMNS, ColumnMapping, Role

SUPPORTED_CONFIG_SUFFIXES = {".json", ".yml", ".yaml"}


def parse_role(name: str) -> Role:
    key = name.strip().lower().replace("-", "_").replace(" ", "_")
    try:
        return Role(key)
    except ValueError:
        valid = ", ".join(role.value for role in Role)
        raise ValueError(f"Unknown column role '{name}'. Valid roles: {valid}") from None


def parse_column_overrides(items: list[str] | None) -> dict[Role, str]:
    overrides: dict[Role, str] = {}
    for item in items or []:
        if "=" not in item:
            raise ValueError(f"Column override must look like ROLE=NAME, got '{item}'")
        role_name, column = item.split("=", 1)
        overrides[parse_role(role_name)] = column.strip()
    return overrides


def mapping_from_payload(payload: Any) -> ColumnMapping:
    if not isinstance(payload, dict):
        raise ValueError("Config root must be a JSON object.")
    columns = payload.get("columns", {})
    if not isinstance(columns, dict):
        raise ValueError("'columns' must be an object of role -> column name.")
    overrides = {}
    for role_name, column in columns.items():
        if not isinstance(column, str):
            raise ValueError(f"Column name for role '{role_name}' must be a string.")
        overrides[parse_role(role_name)] = column
    return ColumnMapping.with_overrides(overrides)


def load_mapping(path: Path) -> ColumnMapping:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config not found: {path}")
    suffix = path.suffix.lower()
    if suffix not in SUPPORTED_CONFIG_SUFFIXES:
        raise ValueError("Config must be .json, .yml, or .yaml")
    if suffix in {".yml", ".yaml"}:
        raise ValueError("YAML configs are not supported yet. Use JSON for now.")
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Could not read config: {exc}") from exc
    return mapping_from_payload(payload)


def mapping_to_payload(mapping: ColumnMapping) -> dict[str, Any]:
    return {"columns": {role.value: mapping.columns.get(role, "") for role in Role}}


def write_starter_config(path: Path) -> None:
    payload = mapping_to_payload(ColumnMapping(dict(DEFAULT_COLUMNS)))
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
