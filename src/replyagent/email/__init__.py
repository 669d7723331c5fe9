"""Email domain: webhook parsing, tracking correlation, threading, and sending."""

from replyagent.email.client import MailgunClient
from replyagent.email.models import InboundMessage, OutboundEmail
from replyagent.email.parser import (
    extract_latest_reply,
    normalize_message_ids,
    parse_webhook_form,
)
from replyagent.email.threading import build_outbound_reply, build_reply_headers
from replyagent.email.tracking import (
    extract_tracking_id,
    new_tracking_id,
    user_code_from_tracking_id,
)

__all__ = [
    "InboundMessage",
    "MailgunClient",
    "OutboundEmail",
    "build_outbound_reply",
    "build_reply_headers",
    "extract_latest_reply",
    "extract_tracking_id",
    "new_tracking_id",
    "normalize_message_ids",
    "parse_webhook_form",
    "user_code_from_tracking_id",
]
