"""
LLM translator -- question -> TranslationResult via the configured model.

The prompt carries the schema catalog, the most recent successful
translations as few-shot examples, a catalog of query patterns and the
mandatory-filter rules.  The model's answer is treated as untrusted: it
must contain one JSON object matching ``TranslationResult`` and its SQL
must pass the allow-list before it is returned or remembered.
"""
from __future__ import annotations

import json
import re
from typing import Any

from pydantic import ValidationError

from salesbot.copilot.history import QueryHistory, get_history
from salesbot.copilot.llm_client import LLMCall, call_llm
from salesbot.copilot.translation import (
    MalformedModelOutputError,
    ModelCallError,
    TranslationResult,
    UnsafeSQLError,
)
from salesbot.governance.schema_loader import SalesSchema, load_schema
from salesbot.governance.sql_safety import check_sql_safety
from salesbot.core.logging import get_logger

logger = get_logger(__name__)

TRANSLATOR_TEMPERATURE = 0.1
TRANSLATOR_MAX_TOKENS = 1500
FEW_SHOT_EXAMPLES = 5

_PROMPT_TEMPLATE = """\
You are a SQL query generator for an Amazon sales database. Learn from the \
successful query examples and generate ACCURATE queries.

Database schema:
{schema}

{examples}CRITICAL FILTERING RULES - MUST FOLLOW:
1. CATEGORY FILTER IS MANDATORY when the user mentions ANY category name
   - "electronics" -> WHERE category = 'Electronics'
   - "clothing" -> WHERE category = 'Clothing'
   - NEVER return results without the category filter when a category is mentioned!
2. COUNTRY FILTER IS MANDATORY when the user mentions ANY country
   - "USA" -> WHERE country = 'USA'
   - "Canada" -> WHERE country = 'Canada'
   - NEVER return results without the country filter when a country is mentioned!
3. ALWAYS validate your WHERE clause before returning.

QUERY PATTERNS:

1. BEST-SELLING / MOST SOLD (by quantity):
   SELECT product_name, SUM(quantity_sold) as total_quantity FROM {table}
   WHERE category = 'CategoryName' GROUP BY product_name ORDER BY total_quantity DESC LIMIT X

2. TOP REVENUE / MOST PROFITABLE:
   SELECT product_name, ROUND(SUM(revenue), 2) as total_revenue FROM {table}
   WHERE category = 'CategoryName' GROUP BY product_name ORDER BY total_revenue DESC LIMIT X

3. HIGHEST RATED:
   SELECT product_name, ROUND(AVG(rating), 2) as avg_rating, COUNT(*) as review_count FROM {table}
   WHERE category = 'CategoryName' GROUP BY product_name HAVING COUNT(*) >= 3
   ORDER BY avg_rating DESC LIMIT X

4. CATEGORY ANALYSIS:
   SELECT category, COUNT(*) as sales_count, ROUND(SUM(revenue), 2) as total_revenue
   FROM {table} GROUP BY category ORDER BY total_revenue DESC

5. COUNTRY ANALYSIS:
   SELECT country, COUNT(*) as sales_count, ROUND(SUM(revenue), 2) as total_revenue
   FROM {table} GROUP BY country ORDER BY total_revenue DESC

6. TIME-BASED (recent, latest, last month):
   SELECT product_name, sale_date, revenue, rating FROM {table} ORDER BY sale_date DESC LIMIT X

7. FILTERED QUERIES (multiple conditions):
   SELECT product_name, ROUND(SUM(revenue), 2) as total_revenue FROM {table}
   WHERE category = 'Electronics' AND country = 'USA' AND rating >= 4.5
   GROUP BY product_name ORDER BY total_revenue DESC LIMIT X

COMMON USER QUESTIONS & CORRECT RESPONSES:

Q: "top 5 best-selling products in electronics"
CORRECT: SELECT product_name, SUM(quantity_sold) as total_quantity FROM {table} WHERE category = 'Electronics' GROUP BY product_name ORDER BY total_quantity DESC LIMIT 5
WRONG: SELECT without WHERE category = 'Electronics'

Q: "best selling clothing products"
CORRECT: SELECT product_name, SUM(quantity_sold) as total_quantity FROM {table} WHERE category = 'Clothing' GROUP BY product_name ORDER BY total_quantity DESC LIMIT 10
WRONG: SELECT without WHERE category = 'Clothing'

Q: "top products in USA"
CORRECT: SELECT product_name, ROUND(SUM(revenue), 2) as total_revenue FROM {table} WHERE country = 'USA' GROUP BY product_name ORDER BY total_revenue DESC LIMIT 10
WRONG: SELECT without WHERE country = 'USA'

RULES:
- Category/Country names are CASE-SENSITIVE - use the exact values from the schema
- "best-selling" = highest SUM(quantity_sold); "top revenue" = highest SUM(revenue)
- "highest rated" = highest AVG(rating) with HAVING COUNT(*) >= 3
- Always GROUP BY product_name when showing products
- Always use ROUND(column, 2) for money and ratings
- Default LIMIT is 10, adjust to the request (top 5 = LIMIT 5), never above {max_rows}
- A single read-only SELECT on {table}; PostgreSQL syntax only; no comments

User question: "{question}"

Respond with JSON only:
{{
  "sql": "Complete PostgreSQL SELECT query",
  "chartType": "bar" | "pie" | "line" | null,
  "explanation": "What this query returns"
}}

Chart types:
- "pie"  -> the user says "pie chart"
- "line" -> the user says "line chart" or "trend"
- "bar"  -> the user says "chart", "graph", "visualize" or "bar"
- null   -> no visualization requested

Return ONLY the JSON object."""

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$")


def format_examples(history: QueryHistory, n: int = FEW_SHOT_EXAMPLES) -> str:
    entries = history.recent(n)
    if not entries:
        return ""
    body = "\n\n".join(
        f'Q: "{e.question}"\nSQL: {e.sql}\nResult: Success' for e in entries
    )
    return f"SUCCESSFUL EXAMPLES FROM THIS SESSION:\n{body}\n\n"


def build_prompt(
    question: str,
    history: QueryHistory,
    schema: SalesSchema | None = None,
) -> str:
    schema = schema or load_schema()
    return _PROMPT_TEMPLATE.format(
        schema=schema.describe(),
        examples=format_examples(history),
        table=schema.table,
        max_rows=schema.security.max_rows,
        question=question,
    )


def extract_json_object(text: str) -> dict[str, Any]:
    """Pull the JSON object out of a model response.

    Raises
    ------
    MalformedModelOutputError
        No brace-delimited object, invalid JSON, or not an object.
    """
    text = _FENCE_RE.sub("", text.strip())
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        raise MalformedModelOutputError("Model response contains no JSON object")
    try:
        data = json.loads(text[start:end + 1])
    except json.JSONDecodeError as exc:
        raise MalformedModelOutputError(f"Model response is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise MalformedModelOutputError("Model response JSON is not an object")
    return data


def parse_response(text: str) -> TranslationResult:
    """Validate a raw model response against the ``TranslationResult`` schema."""
    data = extract_json_object(text)
    data.pop("source", None)
    try:
        return TranslationResult.model_validate({**data, "source": "llm"})
    except ValidationError as exc:
        raise MalformedModelOutputError(f"Model response does not match schema: {exc}") from exc


class LLMTranslator:
    """Translate questions with an LLM, remembering successes as few-shot context.

    Parameters
    ----------
    llm : callable, optional
        ``llm(prompt, temperature=..., max_tokens=...) -> str``; defaults to
        :func:`call_llm` with the configured provider.
    history : QueryHistory, optional
        Defaults to the process-wide history.
    """

    def __init__(
        self,
        llm: LLMCall | None = None,
        history: QueryHistory | None = None,
        schema: SalesSchema | None = None,
    ):
        self._llm = llm or call_llm
        self.history = history if history is not None else get_history()
        self._schema = schema or load_schema()

    def translate(self, question: str) -> TranslationResult:
        """Translate *question*.

        Raises
        ------
        ModelCallError
            The provider call failed.
        MalformedModelOutputError
            The response held no valid translation.
        UnsafeSQLError
            The translated SQL failed the allow-list.
        """
        prompt = build_prompt(question, self.history, self._schema)
        try:
            response = self._llm(
                prompt,
                temperature=TRANSLATOR_TEMPERATURE,
                max_tokens=TRANSLATOR_MAX_TOKENS,
            )
        except Exception as exc:
            raise ModelCallError(f"LLM call failed: {exc}") from exc

        result = parse_response(response)
        violations = check_sql_safety(result.sql, self._schema)
        if violations:
            raise UnsafeSQLError(result.sql, violations)

        logger.info("LLM SQL: %s", result.sql)
        logger.info("LLM explanation: %s", result.explanation)
        self.history.append(question, result.sql)
        return result
