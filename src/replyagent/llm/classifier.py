"""Reply classification using Claude structured outputs.

Extracts intent, sentiment and any proposed meeting time from a lead's
free-text reply.  ``AnthropicClassifier`` wraps the call in the total
``Classifier`` interface the reply pipeline consumes: failures never
propagate, they degrade to ``general_positive`` / ``neutral``.
"""

from __future__ import annotations

from typing import Protocol

import anthropic
import structlog
from anthropic import Anthropic
from pydantic import ValidationError

from replyagent.domain.types import ReplyIntent, Sentiment
from replyagent.llm.client import DEFAULT_CONFIDENCE_THRESHOLD, INTENT_MODEL
from replyagent.llm.models import ReplyClassification
from replyagent.llm.prompts import REPLY_CLASSIFICATION_SYSTEM_PROMPT

logger = structlog.get_logger()

FALLBACK_INTENT = ReplyIntent.GENERAL_POSITIVE
FALLBACK_SENTIMENT = Sentiment.NEUTRAL


class Classifier(Protocol):
    """Total intent/sentiment classifier consumed by the reply pipeline."""

    def classify_intent(self, text: str) -> ReplyIntent: ...

    def classify_sentiment(self, text: str) -> Sentiment: ...


class DefaultClassifier:
    """``Classifier`` used when no LLM is configured: always the fallbacks."""

    def classify_intent(self, text: str) -> ReplyIntent:
        return FALLBACK_INTENT

    def classify_sentiment(self, text: str) -> Sentiment:
        return FALLBACK_SENTIMENT


def classify_reply(
    email_body: str,
    conversation_history: str,
    client: Anthropic,
    *,
    model: str = INTENT_MODEL,
    confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
) -> ReplyClassification:
    """Classify the intent and sentiment of a lead's reply.

    Uses Claude's structured outputs (``client.messages.parse()``) to extract
    a validated ``ReplyClassification``.  If the model's confidence falls
    below *confidence_threshold*, the intent is overridden to
    ``general_positive`` so the generic template is used.

    Args:
        email_body: The latest reply text from the lead.
        conversation_history: Prior turns formatted as plain text (may be
            empty for a first reply).
        client: An ``anthropic.Anthropic`` instance (or compatible mock).
        model: The Anthropic model ID to use.  Defaults to ``INTENT_MODEL``.
        confidence_threshold: Minimum confidence for the intent to stand.
            Comparison is exclusive (``<``).

    Returns:
        The classification.

    Raises:
        anthropic.APIError: If the API call fails.
        RuntimeError: If the structured output is missing.
    """
    response = client.messages.parse(
        model=model,
        max_tokens=512,
        system=REPLY_CLASSIFICATION_SYSTEM_PROMPT.format(
            conversation_history=conversation_history or "(no earlier messages)",
        ),
        messages=[
            {
                "role": "user",
                "content": f"Classify this reply from the lead:\n\n{email_body}",
            },
        ],
        output_format=ReplyClassification,
    )

    parsed = response.parsed_output
    if parsed is None:
        msg = "Anthropic structured output returned None"
        raise RuntimeError(msg)
    result: ReplyClassification = parsed

    if result.confidence < confidence_threshold and result.intent != FALLBACK_INTENT:
        logger.info(
            "classification_low_confidence",
            intent=result.intent.value,
            confidence=result.confidence,
        )
        result = result.model_copy(update={"intent": FALLBACK_INTENT})

    return result


class AnthropicClassifier:
    """``Classifier`` backed by ``classify_reply``.

    Intent and sentiment come from the same structured call, so the result
    for the most recent text is memoized and the second lookup is free.

    Args:
        client: An ``anthropic.Anthropic`` instance.
        conversation_history: Prior turns for context.
        model: The Anthropic model ID to use.
        confidence_threshold: See ``classify_reply``.
    """

    def __init__(
        self,
        client: Anthropic,
        conversation_history: str = "",
        *,
        model: str = INTENT_MODEL,
        confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
    ) -> None:
        self._client = client
        self._history = conversation_history
        self._model = model
        self._threshold = confidence_threshold
        self._last: tuple[str, ReplyClassification | None] | None = None

    def with_history(self, conversation_history: str) -> AnthropicClassifier:
        """Return a classifier sharing this client but using *conversation_history*."""
        return AnthropicClassifier(
            self._client,
            conversation_history,
            model=self._model,
            confidence_threshold=self._threshold,
        )

    def classify(self, text: str) -> ReplyClassification | None:
        """Classify *text*, returning ``None`` instead of raising on failure."""
        if self._last is not None and self._last[0] == text:
            return self._last[1]

        result: ReplyClassification | None
        try:
            result = classify_reply(
                text,
                self._history,
                self._client,
                model=self._model,
                confidence_threshold=self._threshold,
            )
        except (anthropic.APIError, ValidationError, RuntimeError) as exc:
            logger.warning("classification_failed", error=str(exc))
            result = None

        self._last = (text, result)
        return result

    def classify_intent(self, text: str) -> ReplyIntent:
        """Return the reply's intent, or ``general_positive`` on failure."""
        result = self.classify(text)
        return result.intent if result is not None else FALLBACK_INTENT

    def classify_sentiment(self, text: str) -> Sentiment:
        """Return the reply's sentiment, or ``neutral`` on failure."""
        result = self.classify(text)
        return result.sentiment if result is not None else FALLBACK_SENTIMENT
