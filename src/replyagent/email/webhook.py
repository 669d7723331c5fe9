"""FastAPI ingestion endpoints for inbound mail and tracking telemetry.

``POST /webhooks/mailgun`` accepts the URL-encoded form Mailgun posts for a
routed inbound message and runs the reply pipeline on it.
``POST /events/telemetry`` records an open or click reported by the
tracking pixel / redirect service.

Both read their collaborators from ``request.app.state.services`` (see
``replyagent.app.initialize_services``).  Signature verification of the
webhook is not performed here.
"""

from __future__ import annotations

import asyncio
from typing import Any

import structlog
from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

from replyagent.domain.types import EventType
from replyagent.email.parser import parse_webhook_form
from replyagent.events.telemetry import build_click_event, build_open_event, record_telemetry
from replyagent.pipeline import process_inbound_reply

logger = structlog.get_logger()

router = APIRouter()


class TelemetryReport(BaseModel):
    """Body of ``POST /events/telemetry``."""

    tracking_id: str
    event_type: EventType
    url: str = ""


def _response_summary(result: dict[str, Any]) -> dict[str, Any]:
    """Drop fields that are not useful to the webhook caller."""
    summary = {
        key: result[key]
        for key in (
            "action",
            "reason",
            "tracking_id",
            "intent",
            "sentiment",
            "stage",
            "template_intent",
            "enhanced",
            "sent",
        )
        if key in result
    }
    strategy = result.get("meeting_strategy")
    if strategy is not None:
        summary["meeting_strategy"] = strategy.model_dump(mode="json")
    return summary


@router.post("/webhooks/mailgun")
async def mailgun_webhook(request: Request) -> dict[str, Any]:
    """Receive an inbound email and decide the agent's reply.

    1. Parse the URL-encoded form into an ``InboundMessage``.
    2. Run the reply pipeline in a worker thread (it performs blocking I/O).
    3. Return the action taken.  Mailgun only needs a 2xx to stop retrying.

    Args:
        request: The incoming FastAPI request.

    Returns:
        A summary of the pipeline result.
    """
    services: dict[str, Any] = request.app.state.services
    form = await request.form()
    message = parse_webhook_form({key: str(value) for key, value in form.items()})
    logger.info(
        "inbound_email_received",
        from_email=message.from_email,
        to=message.to,
        message_id=message.message_id,
    )

    result = await asyncio.to_thread(
        process_inbound_reply,
        message,
        event_store=services["event_store"],
        settings_provider=services["settings_provider"],
        classifier=services["classifier"],
        library=services.get("template_library"),
        enhancer_client=services.get("enhancer_client"),
        mail_sender=services.get("mail_sender"),
        default_user_code=services.get("default_user_code", ""),
    )
    return _response_summary(result)


@router.post("/events/telemetry")
async def record_telemetry_event(report: TelemetryReport, request: Request) -> dict[str, Any]:
    """Record an ``email_open`` or ``link_click`` event.

    The client's ``User-Agent`` header identifies the actor; crawler traffic
    and repeats within the dedup window are not recorded.

    Raises:
        HTTPException: 422 if the event type is not a telemetry type.
    """
    services: dict[str, Any] = request.app.state.services
    user_agent = request.headers.get("user-agent", "")

    if report.event_type == EventType.EMAIL_OPEN:
        event = build_open_event(report.tracking_id, user_agent)
    elif report.event_type == EventType.LINK_CLICK:
        event = build_click_event(report.tracking_id, report.url, user_agent)
    else:
        raise HTTPException(status_code=422, detail="Only email_open and link_click are accepted")

    recorded = await asyncio.to_thread(
        record_telemetry,
        services["event_store"],
        event,
        services.get("dedup_window"),
    )
    return {"recorded": recorded}
