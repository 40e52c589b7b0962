"""
Loads, parses, and caches the sales schema catalog YAML into typed objects.

The catalog is the single source of truth for:
  - the one queryable table (``sales_data``) and its columns
  - the enumerated category and country values (case-sensitive)
  - security rules (read-only, max rows)
"""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from functools import lru_cache
from typing import Any

import yaml

_CATALOG_PATH = Path(__file__).resolve().parents[2] / "catalog" / "sales_schema.yml"


# ── Typed domain objects ─────────────────────────────────

@dataclass(frozen=True)
class Column:
    name: str
    type: str
    description: str = ""
    enumerated: str | None = None  # "categories" | "countries"


@dataclass(frozen=True)
class SecurityRules:
    read_only: bool = True
    max_rows: int = 200


@dataclass
class SalesSchema:
    """Fully parsed schema catalog."""

    version: int
    table: str
    description: str
    columns: list[Column]
    categories: list[str]
    countries: list[str]
    security: SecurityRules = field(default_factory=SecurityRules)

    def column(self, name: str) -> Column | None:
        for col in self.columns:
            if col.name == name:
                return col
        return None

    def column_names(self) -> list[str]:
        return [c.name for c in self.columns]

    def allowed_values(self, column: str) -> list[str] | None:
        """Enumerated values for *column*, or None when the column is free-form."""
        col = self.column(column)
        if col is None or col.enumerated is None:
            return None
        return getattr(self, col.enumerated)

    def describe(self) -> str:
        """Prompt-ready description of the table."""
        lines = [f"Table: {self.table}", "Columns:"]
        for col in self.columns:
            values = self.allowed_values(col.name)
            if values:
                quoted = ", ".join(f"'{v}'" for v in values)
                lines.append(f"- {col.name} ({col.type}) - EXACT values: {quoted}")
            elif col.description:
                lines.append(f"- {col.name} ({col.type}) - {col.description}")
            else:
                lines.append(f"- {col.name} ({col.type})")
        return "\n".join(lines)


# ── Parsing ──────────────────────────────────────────────

def _parse_column(raw: dict[str, Any]) -> Column:
    return Column(
        name=raw["name"],
        type=raw.get("type", "varchar"),
        description=raw.get("description", ""),
        enumerated=raw.get("enumerated"),
    )


def _parse_security(raw: dict[str, Any] | None) -> SecurityRules:
    if not raw:
        return SecurityRules()
    return SecurityRules(
        read_only=raw.get("read_only", True),
        max_rows=raw.get("max_rows", 200),
    )


def _parse_schema(raw_yaml: dict[str, Any]) -> SalesSchema:
    table = raw_yaml.get("table") or {}
    return SalesSchema(
        version=raw_yaml.get("version", 1),
        table=table.get("name", "sales_data"),
        description=table.get("description", ""),
        columns=[_parse_column(c) for c in raw_yaml.get("columns", [])],
        categories=list(raw_yaml.get("categories", [])),
        countries=list(raw_yaml.get("countries", [])),
        security=_parse_security(raw_yaml.get("security")),
    )


# ── Public API ───────────────────────────────────────────

@lru_cache
def load_schema() -> SalesSchema:
    """Load and cache the schema catalog from YAML."""
    with open(_CATALOG_PATH) as f:
        raw = yaml.safe_load(f)
    return _parse_schema(raw)
