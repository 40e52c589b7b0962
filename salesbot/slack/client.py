"""
Thin Slack Web API client (httpx).

Only ``chat.postMessage`` is needed: every reply, chart and insight is a
plain message in the conversation the question came from.  Delivery
failures are logged and reported back as False, never raised, so one
bad post does not abort the rest of a conversation.
"""
from __future__ import annotations

from typing import Any

import httpx

from salesbot.copilot.renderer import SlackMessage
from salesbot.core.config import get_settings
from salesbot.core.logging import get_logger

logger = get_logger(__name__)

_TIMEOUT_SECONDS = 10.0


class SlackClient:
    def __init__(
        self,
        token: str | None = None,
        api_base: str | None = None,
        http: httpx.Client | None = None,
    ):
        settings = get_settings()
        self._token = token if token is not None else settings.slack_bot_token
        self._api_base = (api_base or settings.slack_api_base).rstrip("/")
        self._http = http or httpx.Client(timeout=_TIMEOUT_SECONDS)

    def post_message(
        self,
        channel: str,
        message: SlackMessage,
        thread_ts: str | None = None,
    ) -> bool:
        payload: dict[str, Any] = {"channel": channel, **message.to_payload()}
        if thread_ts:
            payload["thread_ts"] = thread_ts
        try:
            resp = self._http.post(
                f"{self._api_base}/chat.postMessage",
                json=payload,
                headers={"Authorization": f"Bearer {self._token}"},
            )
            resp.raise_for_status()
            body = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("Slack chat.postMessage failed: %s", exc)
            return False
        if not body.get("ok"):
            logger.error("Slack chat.postMessage error: %s", body.get("error"))
            return False
        return True

    def sayer(self, channel: str, thread_ts: str | None = None):
        """A ``say`` callable bound to *channel*."""
        def say(message: SlackMessage) -> bool:
            return self.post_message(channel, message, thread_ts=thread_ts)
        return say

    def close(self) -> None:
        self._http.close()


_client: SlackClient | None = None


def get_slack_client() -> SlackClient:
    global _client
    if _client is None:
        _client = SlackClient()
    return _client
