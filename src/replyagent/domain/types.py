"""Domain enumerations for the reply agent."""

from enum import StrEnum


class EventType(StrEnum):
    """Kinds of records stored in the append-only event log."""

    EMAIL_OPEN = "email_open"
    LINK_CLICK = "link_click"
    LEAD_MESSAGE = "lead_message"
    AI_REPLY = "ai_reply"


# Event types that carry conversation text; the rest are telemetry.
CONVERSATION_EVENT_TYPES: frozenset[EventType] = frozenset(
    {EventType.LEAD_MESSAGE, EventType.AI_REPLY}
)


class ReplyIntent(StrEnum):
    """Closed set of intents a lead reply can be classified into.

    ``GENERAL_POSITIVE`` is the fallback arm: it is used whenever
    classification fails and whenever no template is registered for the
    classified intent.
    """

    MEETING_REQUEST_POSITIVE = "meeting_request_positive"
    MEETING_TIME_PREFERENCE = "meeting_time_preference"
    MEETING_REQUEST = "meeting_request"
    PRICING_QUESTION = "pricing_question"
    TECHNICAL_QUESTION = "technical_question"
    FEATURE_INQUIRY = "feature_inquiry"
    QUESTION = "question"
    OBJECTION = "objection"
    NOT_INTERESTED = "not_interested"
    GENERAL_POSITIVE = "general_positive"
    NEUTRAL = "neutral"


# Intents that mean the lead has agreed to (or proposed a time for) a meeting.
MEETING_POSITIVE_INTENTS: frozenset[ReplyIntent] = frozenset(
    {ReplyIntent.MEETING_REQUEST_POSITIVE, ReplyIntent.MEETING_TIME_PREFERENCE}
)


class Sentiment(StrEnum):
    """Sentiment of a lead reply."""

    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"


class TurnStatus(StrEnum):
    """Completeness of a reconstructed conversation turn."""

    COMPLETE = "complete"
    PENDING = "pending"
    ORPHANED = "orphaned"


class ConversationStage(StrEnum):
    """How far a conversation has progressed, derived from its turns."""

    NEW = "new"
    ACTIVE = "active"
    ENGAGED = "engaged"


class Urgency(StrEnum):
    """Urgency attached to a meeting suggestion."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class MeetingPushiness(StrEnum):
    """How readily the agent proposes a meeting in its replies."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
