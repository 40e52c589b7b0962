"""
TranslationResult -- the contract between a translator and the rest of
the pipeline, plus the translation error kinds.
"""
from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

ChartType = Literal["bar", "pie", "line"]

CHART_TYPES: tuple[str, ...] = ("bar", "pie", "line")


class TranslationResult(BaseModel):
    """A question translated into executable SQL."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    sql: str = Field(..., min_length=1, description="A single SELECT statement")
    chart_type: Optional[ChartType] = Field(
        None,
        alias="chartType",
        description="bar | pie | line, or null when no chart was asked for",
    )
    explanation: str = Field("", description="What the query returns")
    source: str = Field("heuristic", description="llm | heuristic")


class TranslationError(Exception):
    """A translator could not produce a usable result."""

    kind = "translation"


class ModelCallError(TranslationError):
    kind = "model_call"


class MalformedModelOutputError(TranslationError):
    kind = "malformed_output"


class UnsafeSQLError(TranslationError):
    kind = "unsafe_sql"

    def __init__(self, sql: str, violations: list[str]):
        self.sql = sql
        self.violations = violations
        super().__init__("; ".join(violations))
