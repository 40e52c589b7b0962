"""POST /slack/events and POST /slack/commands -- the Slack-facing endpoints."""
from __future__ import annotations

import json
from urllib.parse import parse_qs

from fastapi import APIRouter, BackgroundTasks, HTTPException, Request

from salesbot.copilot.service import direct_message_options, handle_question, mention_options
from salesbot.db.connection import check_database
from salesbot.slack.client import get_slack_client
from salesbot.slack.events import KIND_MENTION, InboundQuestion, parse_event
from salesbot.slack.signature import verify_signature
from salesbot.core.config import get_settings
from salesbot.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter()

HEALTH_COMMAND = "/salesbot-health"
HEALTHY_TEXT = "✅ Bot is healthy! Database connection active."
UNHEALTHY_TEMPLATE = "❌ Database connection failed: {message}"


async def _verified_body(request: Request) -> bytes:
    body = await request.body()
    secret = get_settings().slack_signing_secret
    if secret and not verify_signature(
        secret,
        request.headers.get("X-Slack-Request-Timestamp"),
        request.headers.get("X-Slack-Signature"),
        body,
    ):
        logger.warning("Rejected Slack request with a bad signature")
        raise HTTPException(status_code=401, detail="invalid signature")
    return body


def process_question(inbound: InboundQuestion) -> None:
    """Run the pipeline for one inbound question (background task)."""
    options = mention_options() if inbound.kind == KIND_MENTION else direct_message_options()
    say = get_slack_client().sayer(inbound.channel)
    handle_question(inbound.text, say, options)


@router.post("/events")
async def events_endpoint(request: Request, background: BackgroundTasks):
    """Events API receiver: acknowledge at once, answer in the background."""
    body = await _verified_body(request)
    try:
        payload = json.loads(body or b"{}")
    except json.JSONDecodeError:
        raise HTTPException(status_code=400, detail="invalid JSON")

    if payload.get("type") == "url_verification":
        return {"challenge": payload.get("challenge", "")}

    if request.headers.get("X-Slack-Retry-Num"):
        logger.info("Ignoring Slack retry #%s", request.headers["X-Slack-Retry-Num"])
        return {"ok": True}

    if payload.get("type") == "event_callback":
        inbound = parse_event(payload.get("event") or {})
        if inbound is not None:
            logger.info("Inbound %s in %s: %s", inbound.kind, inbound.channel, inbound.text[:80])
            background.add_task(process_question, inbound)

    return {"ok": True}


def health_text() -> str:
    try:
        check_database()
    except Exception as exc:
        logger.warning("Health check failed: %s", exc)
        return UNHEALTHY_TEMPLATE.format(message=exc)
    return HEALTHY_TEXT


@router.post("/commands")
async def commands_endpoint(request: Request):
    """Slash commands; only the health check is supported."""
    body = await _verified_body(request)
    form = {k: v[0] for k, v in parse_qs(body.decode()).items()}
    command = form.get("command", "")
    if command != HEALTH_COMMAND:
        return {"response_type": "ephemeral", "text": f"Unknown command: {command}"}
    return {"response_type": "ephemeral", "text": health_text()}
