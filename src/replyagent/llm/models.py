"""Pydantic models defining structured I/O contracts for LLM interactions.

These models are used for:
- Reply classification (structured output from Claude)
- Reply enhancement result tracking
- Deterministic validation gate results
"""

from pydantic import BaseModel, Field

from replyagent.domain.types import ReplyIntent, Sentiment


class ReplyClassification(BaseModel):
    """Structured extraction from a lead's email reply.

    Used with Anthropic structured outputs (client.messages.parse()) to guarantee
    schema-compliant extraction of intent and sentiment from free-text emails.
    """

    intent: ReplyIntent = Field(description="The primary intent of the lead's reply")
    sentiment: Sentiment = Field(description="The overall sentiment of the reply")
    confidence: float = Field(
        description="Confidence in the intent classification (0.0 to 1.0)",
        ge=0.0,
        le=1.0,
    )
    summary: str = Field(
        default="",
        description="One-sentence summary of what the lead is saying",
    )
    proposed_time: str | None = Field(
        default=None,
        description=(
            "The meeting time the lead proposes, quoted from the email "
            "(e.g., 'tomorrow at 3pm'). None if no time is proposed."
        ),
    )


class EnhancedReply(BaseModel):
    """Result of LLM reply enhancement including token usage tracking."""

    email_body: str = Field(description="The enhanced email body text")
    model_used: str = Field(description="The model ID used for enhancement")
    input_tokens: int = Field(description="Number of input tokens consumed")
    output_tokens: int = Field(description="Number of output tokens generated")


class ValidationFailure(BaseModel):
    """A single validation check failure from the deterministic validation gate."""

    check: str = Field(description="Name of the validation check that failed")
    reason: str = Field(description="Human-readable explanation of the failure")
    severity: str = Field(
        default="error",
        description="Severity level: 'error' rejects the enhancement, 'warning' logs but allows",
    )


class ValidationResult(BaseModel):
    """Result of running all validation checks on an enhanced reply.

    The validation gate is entirely deterministic -- no LLM involved.
    """

    passed: bool = Field(description="Whether all error-severity checks passed")
    failures: list[ValidationFailure] = Field(
        default_factory=list,
        description="List of validation failures found",
    )
    email_body: str = Field(description="The email body that was validated")


class EnhancementOutcome(BaseModel):
    """The reply body chosen after attempting enhancement."""

    email_body: str = Field(description="The body to send: enhanced or the original skeleton")
    enhanced: bool = Field(description="Whether the enhanced text was accepted")
    fallback_reason: str | None = Field(
        default=None,
        description="Why the skeleton was kept: 'api_error', 'empty_response' or 'validation'",
    )
    validation: ValidationResult | None = Field(
        default=None,
        description="Validation gate result, when enhancement produced text",
    )
