"""Pydantic v2 models for domain data structures in the reply agent."""

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from replyagent.domain.types import EventType, MeetingPushiness, TurnStatus, Urgency


class Event(BaseModel):
    """A single immutable record in the append-only event log.

    ``lead_message`` and ``ai_reply`` events carry the message text in
    ``payload``.  Telemetry events (``email_open``, ``link_click``) use
    ``actor`` for the client identity and ``payload`` for details such as the
    clicked URL.
    """

    model_config = ConfigDict(frozen=True)

    tracking_id: str
    event_type: EventType
    timestamp: datetime
    actor: str = ""
    payload: str = ""
    message_id: str | None = None  # RFC 2822 Message-ID of the source email

    @field_validator("timestamp")
    @classmethod
    def assume_utc_when_naive(cls, v: datetime) -> datetime:
        """Interpret naive timestamps as UTC so all instants are comparable."""
        if v.tzinfo is None:
            return v.replace(tzinfo=UTC)
        return v


class ConversationTurn(BaseModel):
    """One lead-message / AI-response pairing derived from the event log.

    Never stored: turns are recomputed from events on every read.
    """

    model_config = ConfigDict(frozen=True)

    tracking_id: str
    timestamp: datetime
    lead_message: str | None = None
    ai_response: str | None = None
    sender: str = ""
    recipient: str = ""

    @computed_field  # type: ignore[prop-decorator]
    @property
    def status(self) -> TurnStatus:
        """Return whether the turn is complete, pending, or orphaned."""
        if self.lead_message is not None and self.ai_response is not None:
            return TurnStatus.COMPLETE
        if self.lead_message is not None:
            return TurnStatus.PENDING
        return TurnStatus.ORPHANED


class AgentSettings(BaseModel):
    """Per-user agent configuration, read-only to the reply core.

    Every field has a hard default so a missing or unreachable settings
    store still yields a usable configuration.
    """

    company_name: str = "Our Company"
    product_name: str = "our platform"
    value_propositions: list[str] = Field(default_factory=list)
    calendar_link: str = ""
    calendar_id: str = "primary"
    timezone: str = "America/Los_Angeles"
    ai_assistant_name: str = "AI Assistant"
    response_tone: str = "professional_friendly"
    meeting_pushiness: MeetingPushiness = MeetingPushiness.MEDIUM
    escalate_negative_sentiment: bool = True
    escalation_keywords: list[str] = Field(default_factory=list)
    question_threshold: int = 2

    @field_validator("question_threshold")
    @classmethod
    def threshold_must_be_positive(cls, v: int) -> int:
        """Ensure question_threshold is at least 1."""
        if v < 1:
            raise ValueError("question_threshold must be at least 1")
        return v


class MeetingStrategy(BaseModel):
    """Deterministic meeting recommendation for a single reply."""

    model_config = ConfigDict(frozen=True)

    should_suggest_meeting: bool = False
    urgency: Urgency = Urgency.LOW
    suggested_duration: int = 15  # minutes
    meeting_type: str = "discovery"
    custom_message: str = ""


class LeadInfo(BaseModel):
    """What is known about the lead who sent the inbound reply."""

    email: str = ""
    name: str = ""
    company: str = ""

    @property
    def first_name(self) -> str:
        """Return the first word of ``name``, or an empty string."""
        parts = self.name.split()
        return parts[0] if parts else ""
