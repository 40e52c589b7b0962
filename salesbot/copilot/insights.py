"""
Insight summarizer -- a short narrative for multi-row results.

Works in ``mock`` mode (template-based, no API key needed) and with a
real provider (asks the model for 2-3 sentences).  Scalar results get
no summary: there is nothing to compare.
"""
from __future__ import annotations

from typing import Any

from salesbot.copilot.llm_client import LLMCall, call_llm, current_provider
from salesbot.copilot.renderer import SlackMessage, is_scalar_result, section_block
from salesbot.core.logging import get_logger

logger = get_logger(__name__)

PREVIEW_ROWS = 5
SUMMARY_TEMPERATURE = 0.7
SUMMARY_MAX_TOKENS = 200

_SUMMARY_PROMPT = """\
You are analyzing sales data results. Provide a brief, insightful summary in 2-3 sentences.

User asked: "{question}"

Data returned (first {preview_count} rows):
{preview}

Total rows: {total}

Provide a clear, actionable summary that highlights:
1. Key finding or trend
2. Notable insight or comparison
3. Brief recommendation (if applicable)

Keep it concise, professional, and valuable. Max 3 sentences."""


def preview_rows(rows: list[dict[str, Any]], n: int = PREVIEW_ROWS) -> str:
    return "\n".join(
        ", ".join(f"{key}: {value}" for key, value in row.items())
        for row in rows[:n]
    )


def build_summary_prompt(rows: list[dict[str, Any]], question: str) -> str:
    return _SUMMARY_PROMPT.format(
        question=question,
        preview_count=min(len(rows), PREVIEW_ROWS),
        preview=preview_rows(rows),
        total=len(rows),
    )


def summarize_mock(rows: list[dict[str, Any]], question: str) -> str | None:
    """Template summary: name the leading row and the spread."""
    if not rows or is_scalar_result(rows):
        return None
    first = rows[0]
    leader = ", ".join(f"{k}: {v}" for k, v in first.items())
    summary = f"{len(rows)} rows returned; the first is {leader}."
    numeric = [k for k, v in first.items() if isinstance(v, (int, float)) and not isinstance(v, bool)]
    if numeric and len(rows) > 1:
        key = numeric[-1]
        last = rows[-1].get(key)
        if isinstance(last, (int, float)):
            summary += f" {key} ranges from {first[key]} to {last} across the result."
    return summary


def summarize_llm(
    rows: list[dict[str, Any]],
    question: str,
    llm: LLMCall | None = None,
) -> str | None:
    if not rows or is_scalar_result(rows):
        return None
    llm = llm or call_llm
    try:
        text = llm(
            build_summary_prompt(rows, question),
            temperature=SUMMARY_TEMPERATURE,
            max_tokens=SUMMARY_MAX_TOKENS,
        )
    except Exception as exc:
        logger.warning("Summary generation failed: %s", exc)
        return None
    text = (text or "").strip()
    return text or None


def summarize(
    rows: list[dict[str, Any]],
    question: str,
    llm: LLMCall | None = None,
) -> str | None:
    """Public API -- template summary in mock mode, LLM summary otherwise."""
    if llm is None and current_provider() == "mock":
        return summarize_mock(rows, question)
    return summarize_llm(rows, question, llm=llm)


def insight_message(summary: str) -> SlackMessage:
    return SlackMessage(
        text=f"Key Insights: {summary}",
        blocks=[section_block(f"💡 *Key Insights:*\n{summary}")],
    )
