"""
FastAPI application entry-point.
"""
from __future__ import annotations

import sys

import uvicorn
from fastapi import FastAPI

from salesbot.api.routers import slack
from salesbot.db.connection import check_database
from salesbot.core.config import get_settings
from salesbot.core.logging import get_logger

logger = get_logger(__name__)

app = FastAPI(
    title="Sales Data Assistant",
    version="0.1.0",
    description="Slack bot answering sales-data questions with SQL and charts",
)

app.include_router(slack.router, prefix="/slack", tags=["Slack"])


@app.get("/health")
def health():
    return {"status": "ok"}


def run() -> None:
    """Console entry point: refuse to start without a database, then serve."""
    settings = get_settings()
    try:
        check_database()
    except Exception as exc:
        logger.error("❌ Database connection failed: %s", exc)
        sys.exit(1)
    logger.info("✅ Connected to PostgreSQL database successfully!")

    uvicorn.run(app, host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    run()
