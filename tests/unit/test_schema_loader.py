"""
Unit tests -- schema catalog loader.
"""
import pytest
from salesbot.governance.schema_loader import load_schema


@pytest.fixture(scope="module")
def schema():
    return load_schema()


def test_single_table(schema):
    assert schema.table == "sales_data"


def test_columns(schema):
    assert schema.column_names() == [
        "id", "sale_date", "product_name", "category",
        "country", "revenue", "rating", "quantity_sold",
    ]


def test_fifteen_categories_and_countries(schema):
    assert len(schema.categories) == 15
    assert len(schema.countries) == 15
    assert "Home & Kitchen" in schema.categories
    assert "USA" in schema.countries


def test_allowed_values(schema):
    assert schema.allowed_values("category") == schema.categories
    assert schema.allowed_values("country") == schema.countries
    assert schema.allowed_values("revenue") is None
    assert schema.allowed_values("nope") is None


def test_describe_lists_exact_values(schema):
    text = schema.describe()
    assert "Table: sales_data" in text
    assert "'Electronics'" in text
    assert "'Singapore'" in text
    assert "quantity_sold (integer)" in text


def test_max_rows(schema):
    assert schema.security.max_rows == 200


def test_cached():
    assert load_schema() is load_schema()
