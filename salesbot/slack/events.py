"""
Slack event parsing: which events carry a question, and the question text.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

_MENTION_RE = re.compile(r"<@[A-Z0-9]+>")

KIND_MENTION = "mention"
KIND_DIRECT = "direct"


@dataclass(frozen=True)
class InboundQuestion:
    kind: str
    channel: str
    text: str


def strip_mentions(text: str) -> str:
    return _MENTION_RE.sub("", text).strip()


def parse_event(event: dict[str, Any]) -> InboundQuestion | None:
    """Turn an Events API ``event`` into a question, or None to ignore it.

    ``app_mention`` events always count (the mention token is removed).
    ``message`` events count only when they are plain user messages in a
    direct or group DM: no subtype, not from a bot, not a threaded reply.
    """
    event_type = event.get("type")
    channel = event.get("channel", "")

    if event_type == "app_mention":
        return InboundQuestion(KIND_MENTION, channel, strip_mentions(event.get("text", "")))

    if event_type == "message":
        if event.get("subtype") or event.get("bot_id") or event.get("thread_ts"):
            return None
        # Mentions in channels also arrive as app_mention; answer them once.
        if event.get("channel_type") not in (None, "im", "mpim"):
            return None
        return InboundQuestion(KIND_DIRECT, channel, (event.get("text") or "").strip())

    return None
