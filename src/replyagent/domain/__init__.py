"""Domain types, models, and errors for the reply agent."""

from replyagent.domain.errors import (
    NestedSectionError,
    ReplyAgentError,
    TemplateLibraryError,
    TemplateRenderError,
    UnknownVariableError,
)
from replyagent.domain.models import (
    AgentSettings,
    ConversationTurn,
    Event,
    LeadInfo,
    MeetingStrategy,
)
from replyagent.domain.types import (
    CONVERSATION_EVENT_TYPES,
    MEETING_POSITIVE_INTENTS,
    ConversationStage,
    EventType,
    MeetingPushiness,
    ReplyIntent,
    Sentiment,
    TurnStatus,
    Urgency,
)

__all__ = [
    "CONVERSATION_EVENT_TYPES",
    "MEETING_POSITIVE_INTENTS",
    "AgentSettings",
    "ConversationStage",
    "ConversationTurn",
    "Event",
    "EventType",
    "LeadInfo",
    "MeetingPushiness",
    "MeetingStrategy",
    "NestedSectionError",
    "ReplyAgentError",
    "ReplyIntent",
    "Sentiment",
    "TemplateLibraryError",
    "TemplateRenderError",
    "TurnStatus",
    "UnknownVariableError",
    "Urgency",
]
