"""
Small shared utilities.
"""
from __future__ import annotations

import re
import time
from contextlib import contextmanager
from typing import Generator

_WORD_START = re.compile(r"\b\w")


@contextmanager
def timer() -> Generator[dict, None, None]:
    """Context manager that records elapsed wall-clock milliseconds."""
    result: dict = {}
    start = time.perf_counter()
    try:
        yield result
    finally:
        result["elapsed_ms"] = int((time.perf_counter() - start) * 1000)


def humanize(name: str) -> str:
    """``total_revenue`` -> ``Total Revenue``.

    Only the first letter of each word is touched, so ``avg_rating_USA``
    keeps its acronym.
    """
    return _WORD_START.sub(lambda m: m.group(0).upper(), name.replace("_", " "))
