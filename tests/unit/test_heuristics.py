"""
Unit tests -- heuristic translator rule table.
"""
import pytest
from salesbot.copilot import heuristics
from salesbot.copilot.heuristics import (
    RULES,
    build_where,
    detect_chart_type,
    extract_filters,
    match_rule,
    translate,
)


# ── Scenarios ───────────────────────────────────────────

def test_total_sales_scalar():
    result = translate("total sales")
    assert result.sql == (
        "SELECT ROUND(SUM(revenue), 2) as total_revenue, COUNT(*) as total_sales FROM sales_data"
    )
    assert result.chart_type is None
    assert result.source == "heuristic"


def test_top_best_selling_in_electronics():
    result = translate("top 5 best-selling products in electronics")
    assert "WHERE category = 'Electronics'" in result.sql
    assert "ORDER BY total_quantity DESC" in result.sql
    assert "SUM(quantity_sold)" in result.sql
    assert result.sql.endswith("LIMIT 5")


def test_no_match_returns_none():
    assert translate("purple elephants") is None


def test_input_is_normalised():
    assert translate("   TOTAL SALES  ").sql == translate("total sales").sql


# ── Rule order ──────────────────────────────────────────

@pytest.mark.parametrize("question,rule", [
    ("sales by category", "sales_by_category"),
    ("revenue per country", "sales_by_country"),
    ("total revenue", "total_sales"),
    ("how many sales", "count_sales"),
    ("how many categories", "count_categories"),
    ("count of countries", "count_countries"),
    ("most sold items", "best_selling_products"),
    ("top products", "top_products"),
    ("best categories", "top_categories"),
    ("top countries", "top_countries"),
    ("average rating", "average_rating"),
    ("avg revenue", "average_revenue"),
    ("highest rating items", "highest_rated_products"),
    ("ratings", "rating_by_category"),
    ("latest orders", "recent_sales"),
    ("how is furniture doing", "category_products"),
    ("what about france", "country_products"),
])
def test_rule_selection(question, rule):
    matched = match_rule(question)
    assert matched is not None
    assert matched.name == rule


def test_first_match_wins():
    # "total sales by category" matches both the category breakdown and
    # the total rule; the breakdown comes first.
    assert match_rule("total sales by category").name == "sales_by_category"


def test_count_does_not_fire_on_country():
    assert match_rule("top countries").name == "top_countries"


def test_rule_names_unique():
    names = [r.name for r in RULES]
    assert len(names) == len(set(names))


# ── Filters ─────────────────────────────────────────────

@pytest.mark.parametrize("word,value", [
    ("usa", "USA"),
    ("canada", "Canada"),
    ("uk", "UK"),
    ("germany", "Germany"),
    ("france", "France"),
    ("australia", "Australia"),
])
def test_country_filter_exact_casing(word, value):
    result = translate(f"top products in {word}")
    assert f"country = '{value}'" in result.sql


@pytest.mark.parametrize("question,value", [
    ("total sales for electronics", "Electronics"),
    ("best selling clothing products", "Clothing"),
    ("average rating of kitchen items", "Home & Kitchen"),
    ("top products in pet supplies", "Pet Supplies"),
    ("how many sales in toys", "Toys & Games"),
    ("recent garden sales", "Garden & Outdoor"),
])
def test_category_filter_exact_casing(question, value):
    result = translate(question)
    assert f"category = '{value}'" in result.sql


def test_unrecognised_country_is_not_filtered():
    # Only six countries are recognised by the rules.
    assert "country" not in extract_filters("total sales in japan")
    assert "WHERE" not in translate("total sales in japan").sql


def test_word_boundaries():
    assert extract_filters("ukulele sales") == {}
    assert extract_filters("competitive pricing") == {}


def test_multiple_values_use_in():
    filters = extract_filters("compare usa and canada")
    assert filters == {"country": ["USA", "Canada"]}
    assert build_where(filters) == " WHERE country IN ('USA', 'Canada')"


def test_category_and_country_combined():
    where = build_where(extract_filters("electronics in germany"))
    assert where == " WHERE category = 'Electronics' AND country = 'Germany'"


def test_empty_where():
    assert build_where({}) == ""


# ── Chart kind ──────────────────────────────────────────

@pytest.mark.parametrize("question,kind", [
    ("sales by category chart", "bar"),
    ("graph of sales by country", "bar"),
    ("visualize revenue by category", "bar"),
    ("pie chart of sales by category", "pie"),
    ("line graph of ratings", "line"),
    ("sales by category", None),
    ("pie of sales by category", None),
])
def test_detect_chart_type(question, kind):
    assert detect_chart_type(question) == kind


def test_scalar_rules_never_chart():
    assert translate("total sales chart").chart_type is None


def test_breakdown_rules_carry_chart():
    assert translate("pie chart of sales by category").chart_type == "pie"


# ── Limits ──────────────────────────────────────────────

def test_default_limits():
    assert translate("top products").sql.endswith("LIMIT 10")
    assert translate("top categories").sql.endswith("LIMIT 5")


def test_top_n_is_capped():
    assert translate("top 5000 products").sql.endswith("LIMIT 200")


def test_every_rule_output_passes_allow_list():
    from salesbot.governance.sql_safety import check_sql_safety

    questions = [
        "sales by category in usa", "revenue by country", "total sales in electronics",
        "how many sales", "how many categories", "count countries",
        "top 3 best-selling beauty products", "top products", "top categories",
        "top countries", "average rating", "average revenue",
        "highest rating furniture", "ratings", "recent sales in uk",
        "electronics", "france",
    ]
    for q in questions:
        result = heuristics.translate(q)
        assert result is not None, q
        assert check_sql_safety(result.sql) == [], (q, result.sql)
