"""Template-based reply synthesis.

Selects the template for a classified intent, merges agent settings, lead
info, classification and the meeting strategy into a ``TemplateContext``,
and renders the reply skeleton.  No network I/O happens here: AI
enhancement of the skeleton is the caller's concern.
"""

from __future__ import annotations

from datetime import datetime

import structlog
from pydantic import BaseModel, ConfigDict

from replyagent.domain.models import AgentSettings, LeadInfo, MeetingStrategy
from replyagent.domain.types import ConversationStage, ReplyIntent, Sentiment
from replyagent.synthesis.meeting import (
    ProposedMeetingTime,
    apply_pushiness,
    generate_calendar_text,
    generate_meeting_strategy,
    parse_meeting_time,
)
from replyagent.templates.engine import TemplateValue, render
from replyagent.templates.library import TemplateLibrary, builtin_library

logger = structlog.get_logger()

# Sent when the selected template cannot be rendered.
FALLBACK_REPLY = (
    "Thank you for your reply! I've received your message and will get back to you "
    "shortly with more details."
)


class SynthesizedReply(BaseModel):
    """A rendered reply skeleton and the decisions that shaped it."""

    model_config = ConfigDict(frozen=True)

    text: str
    template_intent: ReplyIntent
    strategy: MeetingStrategy
    proposed_time: ProposedMeetingTime | None = None


def build_template_context(
    intent: ReplyIntent,
    sentiment: Sentiment,
    settings: AgentSettings,
    lead_info: LeadInfo,
    strategy: MeetingStrategy,
    proposed_time: ProposedMeetingTime | None = None,
) -> dict[str, TemplateValue]:
    """Merge everything a template may reference into one context.

    Args:
        intent: The classified intent.
        sentiment: The classified sentiment.
        settings: The agent settings of the owning user.
        lead_info: What is known about the lead.
        strategy: The (pushiness-gated) meeting strategy.
        proposed_time: A meeting time parsed from the lead's reply, if any.

    Returns:
        The template context.  ``value_propositions`` is a list, so the
        engine also exposes ``value_propositions_summary``.
    """
    return {
        "company_name": settings.company_name,
        "product_name": settings.product_name,
        "ai_assistant_name": settings.ai_assistant_name,
        "response_tone": settings.response_tone,
        "calendar_link": settings.calendar_link,
        "value_propositions": list(settings.value_propositions),
        "lead_name": lead_info.name,
        "lead_first_name": lead_info.first_name,
        "lead_email": lead_info.email,
        "lead_company": lead_info.company,
        "intent": intent.value,
        "sentiment": sentiment.value,
        "is_positive": sentiment == Sentiment.POSITIVE,
        "is_negative": sentiment == Sentiment.NEGATIVE,
        "suggest_meeting": strategy.should_suggest_meeting,
        "meeting_duration": strategy.suggested_duration,
        "meeting_type": strategy.meeting_type.replace("_", " "),
        "meeting_urgency": strategy.urgency.value,
        "meeting_message": strategy.custom_message,
        "calendar_text": generate_calendar_text(settings.calendar_link, strategy),
        "proposed_time": proposed_time.display_text if proposed_time else "",
    }


def compose_skeleton(
    intent: ReplyIntent,
    sentiment: Sentiment,
    settings: AgentSettings,
    lead_info: LeadInfo,
    *,
    stage: ConversationStage = ConversationStage.NEW,
    library: TemplateLibrary | None = None,
    lead_message: str = "",
    now: datetime | None = None,
    strict: bool = False,
) -> SynthesizedReply:
    """Render the reply skeleton and report how it was chosen.

    Args:
        intent: The classified intent.
        sentiment: The classified sentiment.
        settings: The agent settings of the owning user.
        lead_info: What is known about the lead.
        stage: The conversation stage, used by the meeting strategy.
        library: Template library; defaults to the built-in fallback library.
        lead_message: The lead's reply text, scanned for a proposed time
            when the intent is ``meeting_time_preference``.
        now: Reference time for resolving relative meeting times.
        strict: Fail on unresolved template variables.

    Returns:
        The rendered skeleton with its template intent and meeting strategy.

    Raises:
        TemplateRenderError: If the selected template is malformed, or in
            strict mode references an unknown variable.
    """
    library = library or builtin_library()
    template_intent, template = library.select(intent)

    strategy = generate_meeting_strategy(intent, stage, lead_info)
    strategy = apply_pushiness(strategy, settings.meeting_pushiness)

    proposed_time = None
    if intent == ReplyIntent.MEETING_TIME_PREFERENCE and lead_message:
        proposed_time = parse_meeting_time(lead_message, settings.timezone, now)

    context = build_template_context(
        intent, sentiment, settings, lead_info, strategy, proposed_time
    )
    text = render(template, context, strict=strict)

    logger.info(
        "reply_synthesized",
        intent=intent.value,
        template_intent=template_intent.value,
        suggest_meeting=strategy.should_suggest_meeting,
    )
    return SynthesizedReply(
        text=text,
        template_intent=template_intent,
        strategy=strategy,
        proposed_time=proposed_time,
    )


def synthesize(
    intent: ReplyIntent,
    sentiment: Sentiment,
    settings: AgentSettings,
    lead_info: LeadInfo,
    *,
    stage: ConversationStage = ConversationStage.NEW,
    library: TemplateLibrary | None = None,
    strict: bool = False,
) -> str:
    """Return the rendered reply skeleton for *intent*.

    See ``compose_skeleton`` for the arguments.

    Raises:
        TemplateRenderError: If the selected template cannot be rendered.
    """
    return compose_skeleton(
        intent,
        sentiment,
        settings,
        lead_info,
        stage=stage,
        library=library,
        strict=strict,
    ).text
