"""
Rolling history of successful LLM translations.

The entries are few-shot examples for later prompts and nothing else:
they are never replayed or executed.  The history is process-local and
bounded; appending past capacity evicts the oldest entry.
"""
from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone

from salesbot.core.config import get_settings
from salesbot.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_CAPACITY = 20


@dataclass(frozen=True)
class HistoryEntry:
    question: str
    sql: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class QueryHistory:
    """Thread-safe bounded FIFO of :class:`HistoryEntry`."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._entries: deque[HistoryEntry] = deque(maxlen=capacity)
        self._lock = threading.Lock()
        self.capacity = capacity

    def append(self, question: str, sql: str) -> HistoryEntry:
        entry = HistoryEntry(question=question, sql=sql)
        with self._lock:
            self._entries.append(entry)
            size = len(self._entries)
        logger.debug("History append size=%d/%d", size, self.capacity)
        return entry

    def recent(self, n: int = 5) -> list[HistoryEntry]:
        """The *n* most recent entries, oldest first."""
        if n <= 0:
            return []
        with self._lock:
            return list(self._entries)[-n:]

    def entries(self) -> list[HistoryEntry]:
        with self._lock:
            return list(self._entries)

    def clear(self) -> int:
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
            return count

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


_history: QueryHistory | None = None
_history_lock = threading.Lock()


def get_history() -> QueryHistory:
    """Return the process-wide history instance."""
    global _history
    with _history_lock:
        if _history is None:
            _history = QueryHistory(capacity=get_settings().history_capacity)
        return _history
