"""
Chart renderer -- rows -> QuickChart image URL.

The chart is described as a Chart.js config, serialised to JSON and
percent-encoded into the chart service URL.  No network I/O happens here;
Slack fetches the image when it renders the message.

Supported chart types:
  - bar   (default; rotated category labels)
  - pie   (percentage data labels, legend at the bottom)
  - line  (point markers)
"""
from __future__ import annotations

import json
from typing import Any
from urllib.parse import quote

from salesbot.core.config import get_settings
from salesbot.core.utils import humanize
from salesbot.copilot.renderer import SlackMessage
from salesbot.core.logging import get_logger

logger = get_logger(__name__)

# ── Chart types ─────────────────────────────────────────

CHART_BAR = "bar"
CHART_LINE = "line"
CHART_PIE = "pie"

MAX_CHART_ROWS = 10
LABEL_MAX_CHARS = 15
LABEL_KEEP_CHARS = 12
ELLIPSIS = "..."

PALETTE = [
    "#FF6384", "#36A2EB", "#FFCE56", "#4BC0C0", "#9966FF",
    "#FF9F40", "#FF6384", "#C9CBCF", "#7BC225", "#E83E8C",
]
LINE_COLOR = "#36A2EB"

_LABEL_HINTS = ("category", "country", "product", "name")
_VALUE_HINTS = ("revenue", "total", "count", "rating", "sales", "quantity")

# Chart.js formatters are code, not data; the placeholder is swapped for
# the function source after JSON serialisation.
_PIE_FORMATTER_PLACEHOLDER = "__PIE_PERCENT_FORMATTER__"
_PIE_FORMATTER_JS = (
    "(value, context) => {"
    " const sum = context.dataset.data.reduce((a, b) => a + b, 0);"
    " const pct = sum ? (value * 100) / sum : 0;"
    " return pct > 5 ? pct.toFixed(1) + '%' : ''; }"
)


# ── Column selection ────────────────────────────────────

def find_label_column(columns: list[str]) -> str:
    for col in columns:
        if any(h in col.lower() for h in _LABEL_HINTS):
            return col
    return columns[0]


def find_value_column(columns: list[str]) -> str:
    for col in columns:
        if any(h in col.lower() for h in _VALUE_HINTS):
            return col
    return columns[-1]


def truncate_label(label: Any) -> str:
    text = str(label) if label is not None else ""
    if len(text) > LABEL_MAX_CHARS:
        return text[:LABEL_KEEP_CHARS] + ELLIPSIS
    return text


def _to_number(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0


# ── Config builders ─────────────────────────────────────

def _title(text: str) -> dict[str, Any]:
    return {"display": True, "text": text, "font": {"size": 16, "weight": "bold"}}


def _pie_config(labels: list[str], values: list[float], title: str) -> dict[str, Any]:
    return {
        "type": CHART_PIE,
        "data": {
            "labels": labels,
            "datasets": [{"data": values, "backgroundColor": PALETTE}],
        },
        "options": {
            "plugins": {
                "legend": {
                    "position": "bottom",
                    "labels": {"boxWidth": 12, "padding": 10, "font": {"size": 11}},
                },
                "title": _title(title),
                "datalabels": {
                    "display": True,
                    "color": "#fff",
                    "font": {"weight": "bold", "size": 12},
                    "formatter": _PIE_FORMATTER_PLACEHOLDER,
                },
            }
        },
    }


def _line_config(labels: list[str], values: list[float], title: str, value_label: str) -> dict[str, Any]:
    return {
        "type": CHART_LINE,
        "data": {
            "labels": labels,
            "datasets": [{
                "label": value_label,
                "data": values,
                "fill": False,
                "borderColor": LINE_COLOR,
                "backgroundColor": LINE_COLOR,
                "tension": 0.1,
                "pointRadius": 5,
                "pointHoverRadius": 7,
            }],
        },
        "options": {
            "plugins": {"title": _title(title), "legend": {"display": False}},
            "scales": {
                "y": {"beginAtZero": True, "ticks": {"font": {"size": 11}}},
                "x": {"ticks": {"font": {"size": 10}}},
            },
        },
    }


def _bar_config(labels: list[str], values: list[float], title: str, value_label: str) -> dict[str, Any]:
    return {
        "type": CHART_BAR,
        "data": {
            "labels": labels,
            "datasets": [{"label": value_label, "data": values, "backgroundColor": PALETTE}],
        },
        "options": {
            "plugins": {"title": _title(title), "legend": {"display": False}},
            "scales": {
                "y": {"beginAtZero": True, "ticks": {"font": {"size": 11}}},
                "x": {"ticks": {"font": {"size": 10}, "maxRotation": 45, "minRotation": 45}},
            },
        },
    }


def build_chart_config(rows: list[dict[str, Any]], chart_type: str | None) -> dict[str, Any]:
    """Chart.js config for the first ``MAX_CHART_ROWS`` rows.

    Raises
    ------
    ValueError
        If *rows* is empty.
    """
    if not rows:
        raise ValueError("Cannot chart an empty result")

    columns = list(rows[0].keys())
    label_col = find_label_column(columns)
    value_col = find_value_column(columns)

    data = rows[:MAX_CHART_ROWS]
    labels = [truncate_label(row.get(label_col)) for row in data]
    values = [_to_number(row.get(value_col)) for row in data]

    title = humanize(label_col)
    value_label = humanize(value_col)

    if chart_type == CHART_PIE:
        return _pie_config(labels, values, title)
    if chart_type == CHART_LINE:
        return _line_config(labels, values, title, value_label)
    return _bar_config(labels, values, title, value_label)


def serialise_config(config: dict[str, Any]) -> str:
    text = json.dumps(config, ensure_ascii=False, separators=(",", ":"))
    return text.replace(f'"{_PIE_FORMATTER_PLACEHOLDER}"', _PIE_FORMATTER_JS)


def chart_url(rows: list[dict[str, Any]], chart_type: str | None, question: str = "") -> str:
    """Build the chart image URL for *rows*."""
    settings = get_settings()
    config = build_chart_config(rows, chart_type)
    encoded = quote(serialise_config(config), safe="-_.!~*'()")
    logger.info("Chart type=%s rows=%d question=%s", config["type"], min(len(rows), MAX_CHART_ROWS), question[:60])
    return f"{settings.chart_base_url}?w={settings.chart_width}&h={settings.chart_height}&c={encoded}"


def chart_message(url: str) -> SlackMessage:
    return SlackMessage(
        text="Chart generated",
        blocks=[{
            "type": "image",
            "title": {"type": "plain_text", "text": "📊 Data Visualization"},
            "image_url": url,
            "alt_text": "Chart visualization",
        }],
    )
