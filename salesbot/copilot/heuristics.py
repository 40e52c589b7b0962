"""
Heuristic translator -- keyword rules that map a question to canned SQL.

This is the fallback when the LLM translator fails (or the only
translator in ``mock`` mode).  Rules live in an ordered table and the
first matching rule wins, so more specific rules must come first.

Category and country keywords found in the question become equality
filters that are injected into every rule's WHERE clause.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable

from salesbot.copilot.translation import TranslationResult
from salesbot.governance.schema_loader import load_schema
from salesbot.core.logging import get_logger

logger = get_logger(__name__)

# ── Keyword maps ─────────────────────────────────────────

_CATEGORY_KEYWORDS: dict[str, list[str]] = {
    "Electronics":            ["electronics", "electronic"],
    "Home & Kitchen":         ["home & kitchen", "home and kitchen", "kitchen"],
    "Sports & Outdoors":      ["sports & outdoors", "sports", "sporting"],
    "Health & Personal Care": ["health & personal care", "health", "personal care"],
    "Beauty":                 ["beauty"],
    "Clothing":               ["clothing", "clothes", "apparel"],
    "Bags & Luggage":         ["bags & luggage", "bags", "luggage"],
    "Furniture":              ["furniture"],
    "Pet Supplies":           ["pet supplies", "pets", "pet"],
    "Baby Products":          ["baby products", "baby"],
    "Books & Stationery":     ["books & stationery", "books", "stationery"],
    "Toys & Games":           ["toys & games", "toys"],
    "Grocery":                ["grocery", "groceries"],
    "Automotive":             ["automotive"],
    "Garden & Outdoor":       ["garden & outdoor", "gardening", "garden"],
}

# Only these six countries are recognised; the other catalog countries
# reach the LLM translator but not the rules.
_COUNTRY_KEYWORDS: dict[str, list[str]] = {
    "USA":       ["usa"],
    "Canada":    ["canada"],
    "UK":        ["uk"],
    "Germany":   ["germany"],
    "France":    ["france"],
    "Australia": ["australia"],
}

_CHART_WORDS = ("chart", "graph", "visualiz")
_PIE_RE = re.compile(r"\bpie\b")
_LINE_RE = re.compile(r"\bline\b")
_TOP_N_RE = re.compile(r"\btop\s+(\d+)\b")


def _keyword_re(words: list[str]) -> re.Pattern[str]:
    return re.compile(r"\b(?:" + "|".join(re.escape(w) for w in words) + r")\b")


_CATEGORY_RES = {value: _keyword_re(words) for value, words in _CATEGORY_KEYWORDS.items()}
_COUNTRY_RES = {value: _keyword_re(words) for value, words in _COUNTRY_KEYWORDS.items()}


# ── Question features ────────────────────────────────────

@dataclass(frozen=True)
class QuestionFeatures:
    text: str                               # lowercased, trimmed
    chart_type: str | None
    filters: dict[str, list[str]]           # column -> enumerated values
    limit: int | None                       # from "top N"

    def has(self, *words: str) -> bool:
        return any(w in self.text for w in words)

    def word(self, *words: str) -> bool:
        """Whole-word match, so "count" does not fire on "country"."""
        return any(re.search(rf"\b{re.escape(w)}\b", self.text) for w in words)


def detect_chart_type(question: str) -> str | None:
    """bar | pie | line when a visualisation is asked for, else None."""
    q = question.lower()
    if not any(w in q for w in _CHART_WORDS):
        return None
    if _PIE_RE.search(q):
        return "pie"
    if _LINE_RE.search(q):
        return "line"
    return "bar"


def extract_filters(question: str) -> dict[str, list[str]]:
    """Recognised category / country keywords, mapped to exact catalog values."""
    q = question.lower()
    filters: dict[str, list[str]] = {}
    categories = [v for v, rx in _CATEGORY_RES.items() if rx.search(q)]
    countries = [v for v, rx in _COUNTRY_RES.items() if rx.search(q)]
    if categories:
        filters["category"] = categories
    if countries:
        filters["country"] = countries
    return filters


def _extract_limit(q: str) -> int | None:
    m = _TOP_N_RE.search(q)
    if not m:
        return None
    return max(1, min(int(m.group(1)), load_schema().security.max_rows))


def analyse(question: str) -> QuestionFeatures:
    q = question.lower().strip()
    return QuestionFeatures(
        text=q,
        chart_type=detect_chart_type(q),
        filters=extract_filters(q),
        limit=_extract_limit(q),
    )


def _quote(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


def build_where(filters: dict[str, list[str]]) -> str:
    """`` WHERE category = 'Electronics' AND country = 'USA'`` (leading space), or ''."""
    parts: list[str] = []
    for column, values in filters.items():
        if len(values) == 1:
            parts.append(f"{column} = {_quote(values[0])}")
        elif values:
            parts.append(f"{column} IN ({', '.join(_quote(v) for v in values)})")
    return " WHERE " + " AND ".join(parts) if parts else ""


# ── Rule table ───────────────────────────────────────────

@dataclass(frozen=True)
class HeuristicRule:
    name: str
    predicate: Callable[[QuestionFeatures], bool]
    template: str
    description: str
    charted: bool = True
    default_limit: int | None = None

    def render(self, f: QuestionFeatures) -> str:
        limit = f.limit or self.default_limit
        return self.template.format(where=build_where(f.filters), limit=limit)


RULES: list[HeuristicRule] = [
    HeuristicRule(
        name="sales_by_category",
        predicate=lambda f: f.has("sales", "revenue") and "category" in f.text,
        template=(
            "SELECT category, COUNT(*) as sales_count, ROUND(SUM(revenue), 2) as total_revenue "
            "FROM sales_data{where} GROUP BY category ORDER BY total_revenue DESC"
        ),
        description="Sales count and revenue per category",
    ),
    HeuristicRule(
        name="sales_by_country",
        predicate=lambda f: f.has("sales", "revenue") and "country" in f.text,
        template=(
            "SELECT country, COUNT(*) as sales_count, ROUND(SUM(revenue), 2) as total_revenue "
            "FROM sales_data{where} GROUP BY country ORDER BY total_revenue DESC"
        ),
        description="Sales count and revenue per country",
    ),
    HeuristicRule(
        name="total_sales",
        predicate=lambda f: f.has("total sales", "total revenue"),
        template=(
            "SELECT ROUND(SUM(revenue), 2) as total_revenue, COUNT(*) as total_sales "
            "FROM sales_data{where}"
        ),
        description="Total revenue and number of sales",
        charted=False,
    ),
    HeuristicRule(
        name="count_sales",
        predicate=lambda f: (f.has("how many") or f.word("count")) and f.has("product", "sale"),
        template="SELECT COUNT(*) as total_sales FROM sales_data{where}",
        description="Number of sales",
        charted=False,
    ),
    HeuristicRule(
        name="count_categories",
        predicate=lambda f: (f.has("how many") or f.word("count")) and "categor" in f.text,
        template="SELECT COUNT(DISTINCT category) as category_count FROM sales_data{where}",
        description="Number of distinct categories",
        charted=False,
    ),
    HeuristicRule(
        name="count_countries",
        predicate=lambda f: (f.has("how many") or f.word("count")) and "countr" in f.text,
        template="SELECT COUNT(DISTINCT country) as country_count FROM sales_data{where}",
        description="Number of distinct countries",
        charted=False,
    ),
    HeuristicRule(
        name="best_selling_products",
        predicate=lambda f: f.has("best-selling", "best selling", "bestselling", "best seller", "most sold"),
        template=(
            "SELECT product_name, SUM(quantity_sold) as total_quantity "
            "FROM sales_data{where} GROUP BY product_name ORDER BY total_quantity DESC LIMIT {limit}"
        ),
        description="Products ranked by units sold",
        default_limit=10,
    ),
    HeuristicRule(
        name="top_products",
        predicate=lambda f: f.word("top", "best") and "product" in f.text,
        template=(
            "SELECT product_name, COUNT(*) as times_sold, ROUND(SUM(revenue), 2) as total_revenue "
            "FROM sales_data{where} GROUP BY product_name ORDER BY total_revenue DESC LIMIT {limit}"
        ),
        description="Products ranked by revenue",
        default_limit=10,
    ),
    HeuristicRule(
        name="top_categories",
        predicate=lambda f: f.word("top", "best") and "categor" in f.text,
        template=(
            "SELECT category, COUNT(*) as sales_count, ROUND(SUM(revenue), 2) as total_revenue "
            "FROM sales_data{where} GROUP BY category ORDER BY total_revenue DESC LIMIT {limit}"
        ),
        description="Categories ranked by revenue",
        default_limit=5,
    ),
    HeuristicRule(
        name="top_countries",
        predicate=lambda f: f.word("top", "best") and "countr" in f.text,
        template=(
            "SELECT country, ROUND(SUM(revenue), 2) as total_revenue "
            "FROM sales_data{where} GROUP BY country ORDER BY total_revenue DESC LIMIT {limit}"
        ),
        description="Countries ranked by revenue",
        default_limit=10,
    ),
    HeuristicRule(
        name="average_rating",
        predicate=lambda f: f.word("average", "avg") and "rating" in f.text,
        template="SELECT ROUND(AVG(rating), 2) as average_rating FROM sales_data{where}",
        description="Average rating",
        charted=False,
    ),
    HeuristicRule(
        name="average_revenue",
        predicate=lambda f: f.word("average", "avg") and f.has("revenue", "sale"),
        template="SELECT ROUND(AVG(revenue), 2) as average_revenue FROM sales_data{where}",
        description="Average revenue per sale",
        charted=False,
    ),
    HeuristicRule(
        name="highest_rated_products",
        predicate=lambda f: f.word("rating", "ratings", "rated") and f.has("highest", "best"),
        template=(
            "SELECT product_name, category, ROUND(AVG(rating), 2) as avg_rating "
            "FROM sales_data{where} GROUP BY product_name, category "
            "HAVING COUNT(*) >= 3 ORDER BY avg_rating DESC LIMIT {limit}"
        ),
        description="Highest-rated products with at least three sales",
        charted=False,
        default_limit=10,
    ),
    HeuristicRule(
        name="rating_by_category",
        predicate=lambda f: f.word("rating", "ratings", "rated"),
        template=(
            "SELECT category, ROUND(AVG(rating), 2) as avg_rating "
            "FROM sales_data{where} GROUP BY category ORDER BY avg_rating DESC"
        ),
        description="Average rating per category",
    ),
    HeuristicRule(
        name="recent_sales",
        predicate=lambda f: f.word("recent", "latest", "last"),
        template=(
            "SELECT sale_date, product_name, category, country, revenue, rating "
            "FROM sales_data{where} ORDER BY sale_date DESC LIMIT {limit}"
        ),
        description="Most recent sales",
        charted=False,
        default_limit=10,
    ),
    HeuristicRule(
        name="category_products",
        predicate=lambda f: "category" in f.filters,
        template=(
            "SELECT product_name, ROUND(SUM(revenue), 2) as total_revenue, ROUND(AVG(rating), 2) as avg_rating "
            "FROM sales_data{where} GROUP BY product_name ORDER BY total_revenue DESC LIMIT {limit}"
        ),
        description="Top products in the mentioned category",
        charted=False,
        default_limit=10,
    ),
    HeuristicRule(
        name="country_products",
        predicate=lambda f: "country" in f.filters,
        template=(
            "SELECT product_name, category, ROUND(SUM(revenue), 2) as total_revenue "
            "FROM sales_data{where} GROUP BY product_name, category ORDER BY total_revenue DESC LIMIT {limit}"
        ),
        description="Top products in the mentioned country",
        charted=False,
        default_limit=10,
    ),
]


def match_rule(question: str) -> HeuristicRule | None:
    f = analyse(question)
    for rule in RULES:
        if rule.predicate(f):
            return rule
    return None


def translate(question: str) -> TranslationResult | None:
    """Translate *question* with the rule table, or None when no rule matches."""
    f = analyse(question)
    for rule in RULES:
        if rule.predicate(f):
            sql = rule.render(f)
            logger.info("Heuristic rule=%s filters=%s chart=%s", rule.name, f.filters, f.chart_type)
            return TranslationResult(
                sql=sql,
                chart_type=f.chart_type if rule.charted else None,
                explanation=rule.description,
                source="heuristic",
            )
    logger.info("Heuristic: no rule matched")
    return None
