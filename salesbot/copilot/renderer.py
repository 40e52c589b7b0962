"""
Result renderer -- rows -> Slack message (text + Block Kit blocks).

Two shapes:
  scalar    a single cell, or a single row of numbers: a header per
            column name and the value in bold
  row list  a header chosen from the question, then one section per row
            (at most 10) separated by dividers, plus a footer when rows
            were cut

Rendering is pure: the same rows and question always give the same message.
"""
from __future__ import annotations

import datetime
import math
from dataclasses import dataclass, field
from typing import Any

from salesbot.core.utils import humanize

MAX_DISPLAY_ROWS = 10
NULL_MARKER = "_N/A_"
NO_RESULTS_TEXT = "📊 No results found for this query."


@dataclass
class SlackMessage:
    """One outbound chat message: fallback text plus optional blocks."""
    text: str
    blocks: list[dict[str, Any]] = field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"text": self.text}
        if self.blocks:
            payload["blocks"] = self.blocks
        return payload


# ── Block helpers ───────────────────────────────────────

def header_block(text: str) -> dict[str, Any]:
    return {"type": "header", "text": {"type": "plain_text", "text": text, "emoji": True}}


def section_block(markdown: str) -> dict[str, Any]:
    return {"type": "section", "text": {"type": "mrkdwn", "text": markdown}}


def divider_block() -> dict[str, Any]:
    return {"type": "divider"}


def context_block(markdown: str) -> dict[str, Any]:
    return {"type": "context", "elements": [{"type": "mrkdwn", "text": markdown}]}


# ── Value formatting ────────────────────────────────────

def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def format_number(value: Any) -> Any:
    """Numbers over 1000 get thousands separators; all numbers get 2 decimals."""
    if not _is_number(value):
        return value
    if value > 1000:
        return f"{value:,.2f}"
    return f"{value:.2f}"


def _as_float(value: Any) -> float | None:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def format_rating(value: Any) -> str:
    rating = _as_float(value)
    if rating is None:
        return str(value)
    stars = max(0, min(5, math.floor(rating + 0.5)))
    return f"{'⭐' * stars} {rating:.2f}"


def format_date(value: datetime.date) -> str:
    """``Jan 5, 2025``."""
    return f"{value:%b} {value.day}, {value.year}"


def format_value(value: Any, key: str) -> str:
    """Format one field according to its column name."""
    if value is None:
        return NULL_MARKER

    k = key.lower()
    if "revenue" in k or "price" in k:
        return f"{format_number(value)}"
    if "rating" in k:
        return format_rating(value)
    if "count" in k or "quantity" in k or "sold" in k:
        unit = "items" if "count" in k else "units"
        return f"{format_number(value)} {unit}"
    if "date" in k and isinstance(value, datetime.date):
        return format_date(value)
    if _is_number(value):
        return format_number(value)
    return str(value)


# ── Titles ──────────────────────────────────────────────

def metric_emoji(key: str) -> str:
    k = key.lower()
    emoji = "📊"
    if "revenue" in k or "sales" in k:
        emoji = "💰"
    if "rating" in k:
        emoji = "⭐"
    if "count" in k:
        emoji = "🔢"
    return emoji


def result_title(question: str) -> tuple[str, str]:
    """(emoji, title) for a row-list reply, from the question wording."""
    q = question.lower()
    if "product" in q:
        return "🛍️", "Top Products"
    if "categor" in q:
        return "📦", "Sales by Category"
    if "countr" in q:
        return "🌍", "Sales by Country"
    if "rating" in q:
        return "⭐", "Rating Analysis"
    if "recent" in q or "latest" in q:
        return "🕐", "Recent Sales"
    return "📊", "Query Results"


# ── Renderers ───────────────────────────────────────────

def is_scalar_result(rows: list[dict[str, Any]]) -> bool:
    """A single cell of any type, or one row of numbers (a KPI row)."""
    if len(rows) != 1 or not rows[0]:
        return False
    if len(rows[0]) == 1:
        return True
    return all(v is None or _is_number(v) for v in rows[0].values())


def render_scalar(row: dict[str, Any]) -> SlackMessage:
    blocks: list[dict[str, Any]] = []
    for key, value in row.items():
        blocks.append(header_block(f"{metric_emoji(key)} {humanize(key)}"))
        shown = format_number(value) if _is_number(value) else format_value(value, key)
        blocks.append(section_block(f"*{shown}*"))
    return SlackMessage(text="Query results", blocks=blocks)


def render_rows(rows: list[dict[str, Any]], question: str) -> SlackMessage:
    emoji, title = result_title(question)
    blocks: list[dict[str, Any]] = [header_block(f"{emoji} {title}"), divider_block()]

    shown = rows[:MAX_DISPLAY_ROWS]
    for index, row in enumerate(shown):
        lines = [f"*{humanize(key)}:* {format_value(value, key)}" for key, value in row.items()]
        blocks.append(section_block("\n".join(lines)))
        if index < len(shown) - 1:
            blocks.append(divider_block())

    if len(rows) > MAX_DISPLAY_ROWS:
        blocks.append(context_block(f"_Showing top {MAX_DISPLAY_ROWS} of {len(rows)} results_"))
    return SlackMessage(text="Query results", blocks=blocks)


def render_results(rows: list[dict[str, Any]], question: str) -> SlackMessage:
    """Render a query result for chat."""
    if not rows:
        return SlackMessage(text=NO_RESULTS_TEXT)
    if is_scalar_result(rows):
        return render_scalar(rows[0])
    return render_rows(rows, question)
