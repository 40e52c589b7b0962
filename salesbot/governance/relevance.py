"""
Relevance filter -- decides whether a question is about the sales data.

Off-topic patterns reject first, then sales keywords accept.  Anything
the two lists do not resolve is let through: a wasted translation is
cheaper than turning away a real question.
"""
from __future__ import annotations

import re

from salesbot.core.logging import get_logger

logger = get_logger(__name__)

SALES_KEYWORDS: tuple[str, ...] = (
    "sales", "revenue", "product", "category", "country", "rating", "sold",
    "top", "best", "worst", "highest", "lowest", "average", "total", "count",
    "how many", "show me", "chart", "graph", "visualize", "compare", "breakdown",
    "electronics", "clothing", "furniture", "beauty", "sports", "pet", "baby",
    "usa", "canada", "uk", "germany", "france", "australia", "japan",
    "profitable", "performance", "metrics", "analysis", "data", "report",
)

_OFF_TOPIC_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"\bweather\b", r"\bjokes?\b", r"\brecipes?\b", r"\bmovies?\b", r"\bsongs?\b",
        r"\bgames?\b", r"\btell me about\b", r"\bwho is\b", r"\bwhat is the capital\b",
        r"\btranslate\b", r"\bplay\b", r"\bmusic\b", r"\bvideos?\b", r"\bnews\b",
        r"\bsports score", r"\bwhat time\b", r"\bset alarm\b", r"\bremind me\b",
        r"\bcalculate\b", r"\bmeaning of life\b", r"\bhow old\b", r"\bwho won\b",
        r"\bcurrent president\b",
    )
)

GREETINGS: tuple[str, ...] = (
    "hi", "hello", "hey", "good morning", "good afternoon", "good evening",
    "how are you", "what's up", "sup", "howdy",
)

_GREETING_RE = re.compile(
    r"\b(?:" + "|".join(re.escape(g) for g in GREETINGS) + r")\b",
    re.IGNORECASE,
)


def is_off_topic(question: str) -> bool:
    return any(p.search(question) for p in _OFF_TOPIC_PATTERNS)


def has_sales_keyword(question: str) -> bool:
    q = question.lower()
    return any(kw in q for kw in SALES_KEYWORDS)


def is_relevant(question: str) -> bool:
    """Return True when *question* should go to the translators."""
    if is_off_topic(question):
        logger.info("Relevance: off-topic pattern matched -> rejected")
        return False
    if has_sales_keyword(question):
        return True
    logger.info("Relevance: no keyword matched -> assuming relevant")
    return True


def is_greeting(message: str) -> bool:
    """A greeting phrase in a message of at most five words."""
    return len(message.split()) <= 5 and _GREETING_RE.search(message) is not None
