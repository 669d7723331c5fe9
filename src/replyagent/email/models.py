"""Pydantic v2 models for the email domain.

Provides frozen (immutable) models for inbound replies received through the
mail webhook and outbound replies handed to the mail sender.
"""

from pydantic import BaseModel, ConfigDict


class InboundMessage(BaseModel):
    """An inbound email reply, constructed once per webhook invocation.

    Every field except ``body_text`` is optional because webhook payloads
    vary by provider and by how the lead's mail client replied.
    """

    model_config = ConfigDict(frozen=True)

    body_text: str
    from_email: str | None = None
    to: str | None = None
    subject: str | None = None
    body_html: str | None = None
    message_id: str | None = None  # RFC 2822 Message-ID, without angle brackets
    in_reply_to: str | None = None
    references: str | None = None  # Space-separated RFC 2822 Message-IDs


class OutboundEmail(BaseModel):
    """An outbound reply to be sent to a lead.

    When ``in_reply_to`` and ``references`` are provided the email is
    threaded as a reply.  ``message_id`` and ``reply_to`` carry the tracking
    id so the lead's next reply can be correlated.
    """

    model_config = ConfigDict(frozen=True)

    to: str
    subject: str
    body: str
    message_id: str | None = None
    reply_to: str | None = None
    in_reply_to: str | None = None
    references: str | None = None
