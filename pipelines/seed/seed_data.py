"""
Seed data generator -- creates demo sales transactions in ``sales_data``.

Generates ~20 000 sales over two years, spread across the 15 catalog
categories and 15 catalog countries (exact, case-sensitive spellings).

Run:  python -m pipelines.seed.seed_data
"""
from __future__ import annotations

import os
import random
from datetime import date, timedelta
from pathlib import Path

import yaml
from dotenv import load_dotenv
from faker import Faker
from sqlalchemy import create_engine, text

# ── Load .env from project root ─────────────────────────
_PROJECT_ROOT = Path(__file__).resolve().parents[2]
load_dotenv(_PROJECT_ROOT / ".env")

fake = Faker()
Faker.seed(42)
random.seed(42)

# ── Tunables ─────────────────────────────────────────────
NUM_SALES = 20_000
PRODUCTS_PER_CATEGORY = 12

_CATALOG = yaml.safe_load((_PROJECT_ROOT / "catalog" / "sales_schema.yml").read_text())
CATEGORIES: list[str] = _CATALOG["categories"]
COUNTRIES: list[str] = _CATALOG["countries"]
COUNTRY_WEIGHTS = [30, 10, 10, 9, 8, 6, 6, 5, 3, 3, 3, 2, 2, 2, 1]

PRICE_RANGES: dict[str, tuple[float, float]] = {
    "Electronics": (25.0, 1500.0),
    "Furniture": (40.0, 900.0),
    "Automotive": (10.0, 400.0),
    "Grocery": (2.0, 60.0),
    "Books & Stationery": (3.0, 50.0),
}
DEFAULT_PRICE_RANGE = (5.0, 250.0)

# ── Helper: date ranges ─────────────────────────────────
DATE_START = date(2024, 1, 1)
DATE_END = date(2025, 12, 31)
DATE_RANGE_DAYS = (DATE_END - DATE_START).days

_CREATE_SQL = """
CREATE TABLE IF NOT EXISTS sales_data (
    id             SERIAL PRIMARY KEY,
    sale_date      DATE NOT NULL,
    product_name   VARCHAR(200) NOT NULL,
    category       VARCHAR(60) NOT NULL,
    country        VARCHAR(60) NOT NULL,
    revenue        NUMERIC(12, 2) NOT NULL,
    rating         NUMERIC(3, 2) CHECK (rating BETWEEN 0 AND 5),
    quantity_sold  INTEGER NOT NULL
);
"""


def _db_url() -> str:
    user = os.getenv("POSTGRES_USER", "salesbot")
    pw = os.getenv("POSTGRES_PASSWORD", "salesbot_pw")
    host = os.getenv("POSTGRES_HOST", "localhost")
    port = os.getenv("POSTGRES_PORT", "5432")
    db = os.getenv("POSTGRES_DB", "sales")
    return f"postgresql://{user}:{pw}@{host}:{port}/{db}"


# ── Generators ───────────────────────────────────────────

def gen_products() -> list[dict]:
    """Product catalogue: name, category, unit price, base rating."""
    products = []
    for category in CATEGORIES:
        low, high = PRICE_RANGES.get(category, DEFAULT_PRICE_RANGE)
        for _ in range(PRODUCTS_PER_CATEGORY):
            products.append({
                "product_name": f"{fake.company().split()[0]} {fake.word().title()} {category.split()[0]}",
                "category": category,
                "unit_price": round(random.uniform(low, high), 2),
                "base_rating": random.uniform(2.5, 4.9),
            })
    return products


def gen_sales(products: list[dict]) -> list[dict]:
    rows = []
    for _ in range(NUM_SALES):
        product = random.choice(products)
        quantity = random.randint(1, 8)
        rating = min(5.0, max(0.0, random.gauss(product["base_rating"], 0.4)))
        rows.append({
            "sale_date": DATE_START + timedelta(days=random.randint(0, DATE_RANGE_DAYS)),
            "product_name": product["product_name"],
            "category": product["category"],
            "country": random.choices(COUNTRIES, weights=COUNTRY_WEIGHTS, k=1)[0],
            "revenue": round(product["unit_price"] * quantity, 2),
            "rating": round(rating, 2),
            "quantity_sold": quantity,
        })
    return rows


# ── Bulk insert helper ───────────────────────────────────

def _bulk_insert(engine, table: str, rows: list[dict], batch_size: int = 2000):
    """Insert rows into *table* in batches using executemany-style VALUES."""
    if not rows:
        return
    cols = list(rows[0].keys())
    col_list = ", ".join(cols)
    param_list = ", ".join(f":{c}" for c in cols)
    sql = text(f"INSERT INTO {table} ({col_list}) VALUES ({param_list})")
    with engine.begin() as conn:
        for i in range(0, len(rows), batch_size):
            conn.execute(sql, rows[i : i + batch_size])
    print(f"  ✓ {table}: {len(rows):,} rows")


# ── Main ─────────────────────────────────────────────────

def main():
    print("═══ Sales Seed Data Generator ═══")
    engine = create_engine(_db_url(), echo=False)

    print("Creating / truncating sales_data …")
    with engine.begin() as conn:
        conn.execute(text(_CREATE_SQL))
        conn.execute(text("TRUNCATE TABLE sales_data RESTART IDENTITY"))

    print("Generating data …")
    products = gen_products()
    sales = gen_sales(products)

    print("Inserting …")
    _bulk_insert(engine, "sales_data", sales)

    print(f"\nDone -- seeded {len(sales):,} sales of {len(products):,} products.")


if __name__ == "__main__":
    main()
