"""End-to-end reply pipeline for a single inbound email.

Wires together tracking correlation, conversation reconstruction,
classification, template synthesis, escalation checks, optional AI
enhancement, event persistence, and optional sending into a single
``process_inbound_reply`` function that decides the action for each reply.

Every collaborator is passed in explicitly; nothing here reads module-level
clients or settings.
"""

from __future__ import annotations

import email.utils
from datetime import UTC, datetime, timedelta
from typing import Any

import httpx
import structlog
from anthropic import Anthropic

from replyagent.agent_settings.provider import SettingsProvider
from replyagent.conversation.reconstruct import (
    conversation_stage,
    format_history,
    reconstruct_conversation,
)
from replyagent.domain.errors import TemplateRenderError
from replyagent.domain.models import AgentSettings, Event, LeadInfo
from replyagent.domain.types import EventType, ReplyIntent, Sentiment
from replyagent.email.client import MailgunClient
from replyagent.email.models import InboundMessage
from replyagent.email.parser import extract_latest_reply, html_to_text
from replyagent.email.threading import build_outbound_reply
from replyagent.email.tracking import extract_tracking_id, user_code_from_tracking_id
from replyagent.events.store import EventStore
from replyagent.llm.classifier import AnthropicClassifier, Classifier
from replyagent.llm.client import DEFAULT_HISTORY_TURNS
from replyagent.llm.enhancer import enhance_with_fallback
from replyagent.observability.metrics import (
    ENHANCEMENT_FALLBACKS,
    ESCALATIONS,
    REPLIES_GENERATED,
    TRACKING_MISSES,
)
from replyagent.synthesis.synthesizer import FALLBACK_REPLY, compose_skeleton
from replyagent.templates.library import TemplateLibrary

logger = structlog.get_logger()

# Offset of the recorded AI reply from its lead message so the pair sorts lead first.
REPLY_TIMESTAMP_OFFSET = timedelta(microseconds=1)


def lead_info_from_message(message: InboundMessage) -> LeadInfo:
    """Build ``LeadInfo`` from the ``From`` header of *message*."""
    name, address = email.utils.parseaddr(message.from_email or "")
    return LeadInfo(email=address, name=name)


def lead_text_from_message(message: InboundMessage) -> str:
    """Return only the lead's new text, without quoted history."""
    body = message.body_text
    if not body.strip() and message.body_html:
        body = html_to_text(message.body_html)
    if not body.strip():
        return ""
    return extract_latest_reply(body).strip()


def escalation_reason(
    lead_text: str,
    sentiment: Sentiment,
    settings: AgentSettings,
) -> str | None:
    """Return why the reply should go to a human instead, or ``None``.

    A reply escalates when its sentiment is negative and the agent is set to
    escalate negative replies, or when it contains one of the agent's
    escalation keywords (case-insensitive).
    """
    if sentiment == Sentiment.NEGATIVE and settings.escalate_negative_sentiment:
        return "negative_sentiment"
    lowered = lead_text.lower()
    for keyword in settings.escalation_keywords:
        if keyword and keyword.lower() in lowered:
            return f"keyword:{keyword}"
    return None


def _is_duplicate_delivery(events: list[Event], message_id: str | None) -> bool:
    if not message_id:
        return False
    return any(
        e.event_type == EventType.LEAD_MESSAGE and e.message_id == message_id for e in events
    )


def process_inbound_reply(
    message: InboundMessage,
    *,
    event_store: EventStore,
    settings_provider: SettingsProvider,
    classifier: Classifier,
    library: TemplateLibrary | None = None,
    enhancer_client: Anthropic | None = None,
    mail_sender: MailgunClient | None = None,
    default_user_code: str = "",
    now: datetime | None = None,
) -> dict[str, Any]:
    """Decide and record the agent's response to one inbound reply.

    Flow: extract tracking id -> load the conversation's events -> drop
    redelivered messages -> classify -> synthesize the skeleton -> escalate, or
    enhance (optional) and persist the new turn -> send (optional).

    Args:
        message: The parsed inbound email.
        event_store: The append-only event log.
        settings_provider: Source of per-user agent settings.
        classifier: Total intent/sentiment classifier.
        library: Reply templates; defaults to the built-in fallback library.
        enhancer_client: Anthropic client for AI enhancement; ``None``
            disables enhancement.
        mail_sender: Mail client for sending the reply; ``None`` leaves
            sending to the caller.
        default_user_code: Settings owner when the tracking id does not
            embed a user code.
        now: Timestamp of the lead event; the AI reply is recorded
            ``REPLY_TIMESTAMP_OFFSET`` later. Defaults to the current time.

    Returns:
        A dict with an ``"action"`` key, one of ``"ignored"`` (no tracking
        id), ``"duplicate"`` (message already processed), ``"escalate"``
        (held for a human, with the draft) or ``"reply"`` (with the reply
        body and the decisions behind it).
    """
    tracking_id = extract_tracking_id(message)
    if tracking_id is None:
        TRACKING_MISSES.inc()
        logger.info("tracking_id_not_found", message_id=message.message_id)
        return {"action": "ignored", "reason": "no_tracking_id"}

    log = logger.bind(tracking_id=tracking_id)
    now = now or datetime.now(tz=UTC)

    # Step 1 - Load the conversation and drop redelivered webhooks
    events = event_store.query(tracking_id=tracking_id)
    if _is_duplicate_delivery(events, message.message_id):
        log.info("inbound_duplicate_skipped", message_id=message.message_id)
        return {"action": "duplicate", "tracking_id": tracking_id}

    lead_text = lead_text_from_message(message)
    lead_info = lead_info_from_message(message)
    lead_event = Event(
        tracking_id=tracking_id,
        event_type=EventType.LEAD_MESSAGE,
        timestamp=now,
        actor=lead_info.email or (message.from_email or ""),
        payload=lead_text,
        message_id=message.message_id,
    )

    prior_turns = reconstruct_conversation(events, tracking_id)
    turns = reconstruct_conversation([*events, lead_event], tracking_id)

    # Step 2 - Classify (total: failures degrade to safe defaults)
    if isinstance(classifier, AnthropicClassifier):
        classifier = classifier.with_history(
            format_history(prior_turns, max_turns=DEFAULT_HISTORY_TURNS)
        )
    intent: ReplyIntent = classifier.classify_intent(lead_text)
    sentiment: Sentiment = classifier.classify_sentiment(lead_text)

    # Step 3 - Load the owner's settings and synthesize the skeleton
    user_code = user_code_from_tracking_id(tracking_id) or default_user_code
    settings = settings_provider.get_settings(user_code)
    stage = conversation_stage(turns, settings.question_threshold)

    result: dict[str, Any] = {
        "tracking_id": tracking_id,
        "user_code": user_code,
        "intent": intent,
        "sentiment": sentiment,
        "stage": stage,
    }

    try:
        synthesized = compose_skeleton(
            intent,
            sentiment,
            settings,
            lead_info,
            stage=stage,
            library=library,
            lead_message=lead_text,
            now=now,
        )
    except TemplateRenderError as exc:
        log.error("template_render_failed", intent=intent.value, error=str(exc))
        synthesized = None
        body = FALLBACK_REPLY
        result.update(template_intent=None, meeting_strategy=None, enhanced=False)
    else:
        REPLIES_GENERATED.labels(intent=intent.value).inc()
        body = synthesized.text
        result.update(
            template_intent=synthesized.template_intent,
            meeting_strategy=synthesized.strategy,
            proposed_time=synthesized.proposed_time,
            enhanced=False,
        )

    # Step 4 - Escalate to a human instead of replying; the draft is never enhanced
    reason = escalation_reason(lead_text, sentiment, settings)
    if reason is not None:
        event_store.append(lead_event)
        ESCALATIONS.inc()
        log.info("reply_escalated", reason=reason, intent=intent.value)
        return {**result, "action": "escalate", "reason": reason, "draft": body}

    # Step 5 - Optional AI enhancement, gated by deterministic validation
    if synthesized is not None and enhancer_client is not None:
        outcome = enhance_with_fallback(
            body,
            lead_text,
            format_history(prior_turns, max_turns=DEFAULT_HISTORY_TURNS),
            settings,
            enhancer_client,
        )
        if not outcome.enhanced:
            ENHANCEMENT_FALLBACKS.labels(reason=outcome.fallback_reason or "unknown").inc()
        body = outcome.email_body
        result["enhanced"] = outcome.enhanced

    # Step 6 - Persist the new turn
    event_store.append(lead_event)
    event_store.append(
        Event(
            tracking_id=tracking_id,
            event_type=EventType.AI_REPLY,
            timestamp=now + REPLY_TIMESTAMP_OFFSET,
            actor=lead_event.actor,
            payload=body,
        )
    )
    log.info("reply_recorded", intent=intent.value, stage=stage.value)

    result.update(action="reply", reply_body=body, sent=False)

    # Step 7 - Optional send
    if mail_sender is not None and lead_info.email:
        outbound = build_outbound_reply(message, body, tracking_id, mail_sender.domain)
        try:
            response = mail_sender.send(outbound)
        except httpx.HTTPError as exc:
            log.error("reply_send_failed", error=str(exc))
        else:
            result.update(sent=True, mail_id=response.get("id"))

    return result
