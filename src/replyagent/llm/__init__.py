"""LLM integration package for the reply agent.

Provides Anthropic client configuration, Pydantic models for LLM I/O,
system prompt templates, reply classification, skeleton enhancement, and
the deterministic validation gate.
"""

from replyagent.llm.classifier import (
    AnthropicClassifier,
    Classifier,
    DefaultClassifier,
    classify_reply,
)
from replyagent.llm.client import (
    COMPOSE_MODEL,
    DEFAULT_CONFIDENCE_THRESHOLD,
    INTENT_MODEL,
    get_anthropic_client,
)
from replyagent.llm.enhancer import enhance_reply, enhance_with_fallback
from replyagent.llm.models import (
    EnhancedReply,
    EnhancementOutcome,
    ReplyClassification,
    ValidationFailure,
    ValidationResult,
)
from replyagent.llm.validation import validate_enhanced_reply

__all__ = [
    "COMPOSE_MODEL",
    "DEFAULT_CONFIDENCE_THRESHOLD",
    "INTENT_MODEL",
    "AnthropicClassifier",
    "Classifier",
    "DefaultClassifier",
    "EnhancedReply",
    "EnhancementOutcome",
    "ReplyClassification",
    "ValidationFailure",
    "ValidationResult",
    "classify_reply",
    "enhance_reply",
    "enhance_with_fallback",
    "get_anthropic_client",
    "validate_enhanced_reply",
]
