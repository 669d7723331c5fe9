"""Optional AI enhancement of rendered reply skeletons.

Uses the Anthropic Claude API to rewrite a template skeleton so it answers
the lead's latest message naturally.  The enhanced text only replaces the
skeleton after passing the deterministic validation gate; any failure keeps
the skeleton unchanged.
"""

from __future__ import annotations

import anthropic
import structlog
from anthropic import Anthropic

from replyagent.domain.models import AgentSettings
from replyagent.llm.client import COMPOSE_MODEL
from replyagent.llm.models import EnhancedReply, EnhancementOutcome
from replyagent.llm.prompts import REPLY_ENHANCEMENT_SYSTEM_PROMPT, REPLY_ENHANCEMENT_USER_PROMPT
from replyagent.llm.validation import validate_enhanced_reply

logger = structlog.get_logger()


def enhance_reply(
    skeleton: str,
    lead_message: str,
    conversation_history: str,
    settings: AgentSettings,
    client: Anthropic,
    model: str = COMPOSE_MODEL,
) -> EnhancedReply:
    """Rewrite a reply skeleton using the Claude API.

    The system prompt carries the agent persona and tone and is cached for
    cost savings across replies.

    Args:
        skeleton: The rendered template text.
        lead_message: The lead's latest reply.
        conversation_history: Prior turns formatted as plain text.
        settings: The agent settings of the owning user.
        client: Configured Anthropic client instance.
        model: Model ID to use. Defaults to COMPOSE_MODEL (Sonnet).

    Returns:
        EnhancedReply with the rewritten body, model used, and token counts.

    Raises:
        anthropic.APIError: If the API call fails.
        ValueError: If the response contains no text.
    """
    system_text = REPLY_ENHANCEMENT_SYSTEM_PROMPT.format(
        ai_assistant_name=settings.ai_assistant_name,
        company_name=settings.company_name,
        product_name=settings.product_name,
        response_tone=settings.response_tone.replace("_", " "),
    )

    user_text = REPLY_ENHANCEMENT_USER_PROMPT.format(
        lead_message=lead_message,
        conversation_history=conversation_history or "(no earlier messages)",
        skeleton=skeleton,
    )

    response = client.messages.create(
        model=model,
        max_tokens=1024,
        system=[
            {
                "type": "text",
                "text": system_text,
                "cache_control": {"type": "ephemeral"},
            }
        ],
        messages=[
            {
                "role": "user",
                "content": user_text,
            }
        ],
    )

    email_body = "".join(
        block.text for block in response.content if getattr(block, "type", None) == "text"
    ).strip()
    if not email_body:
        msg = "Enhancement response contained no text"
        raise ValueError(msg)

    return EnhancedReply(
        email_body=email_body,
        model_used=model,
        input_tokens=response.usage.input_tokens,
        output_tokens=response.usage.output_tokens,
    )


def enhance_with_fallback(
    skeleton: str,
    lead_message: str,
    conversation_history: str,
    settings: AgentSettings,
    client: Anthropic,
    model: str = COMPOSE_MODEL,
) -> EnhancementOutcome:
    """Enhance *skeleton*, keeping it unchanged on any failure.

    The skeleton is kept when the API call fails, the response is empty, or
    the enhanced text fails ``validate_enhanced_reply``.

    Returns:
        The chosen body and why the skeleton was kept, if it was.
    """
    try:
        enhanced = enhance_reply(
            skeleton, lead_message, conversation_history, settings, client, model
        )
    except anthropic.APIError as exc:
        logger.warning("enhancement_failed", reason="api_error", error=str(exc))
        return EnhancementOutcome(email_body=skeleton, enhanced=False, fallback_reason="api_error")
    except ValueError:
        logger.warning("enhancement_failed", reason="empty_response")
        return EnhancementOutcome(
            email_body=skeleton, enhanced=False, fallback_reason="empty_response"
        )

    validation = validate_enhanced_reply(
        enhanced.email_body, skeleton, calendar_link=settings.calendar_link
    )
    if not validation.passed:
        logger.warning(
            "enhancement_rejected",
            checks=[f.check for f in validation.failures if f.severity == "error"],
        )
        return EnhancementOutcome(
            email_body=skeleton,
            enhanced=False,
            fallback_reason="validation",
            validation=validation,
        )

    logger.info(
        "reply_enhanced",
        model=enhanced.model_used,
        input_tokens=enhanced.input_tokens,
        output_tokens=enhanced.output_tokens,
    )
    return EnhancementOutcome(
        email_body=enhanced.email_body, enhanced=True, validation=validation
    )
