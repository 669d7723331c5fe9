"""Inbound webhook parsing and reply text extraction.

Provides helpers for:
- Mapping a URL-encoded mail webhook form into an ``InboundMessage``
- Normalizing RFC 2822 Message-ID header values
- Extracting only the latest reply from a multi-message email thread
"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping

import structlog
from mailparser_reply import EmailReplyParser  # type: ignore[import-untyped]

from replyagent.email.models import InboundMessage

logger = structlog.get_logger()

_ANGLE_ID = re.compile(r"<([^>]+)>")
_HTML_TAG = re.compile(r"<[^>]+>")


def parse_message_headers(raw: str | None) -> dict[str, str]:
    """Parse a ``message-headers`` JSON list of ``[name, value]`` pairs.

    Header names are lower-cased.  Malformed input yields an empty dict.

    Args:
        raw: The JSON text from the webhook form, or ``None``.

    Returns:
        A dict of lower-cased header names to values.
    """
    if not raw:
        return {}
    try:
        pairs = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("message_headers_unparseable")
        return {}

    headers: dict[str, str] = {}
    if not isinstance(pairs, list):
        return headers
    for pair in pairs:
        if isinstance(pair, list | tuple) and len(pair) == 2:
            headers[str(pair[0]).lower()] = str(pair[1])
    return headers


def normalize_message_ids(value: str | None) -> str | None:
    """Strip angle brackets from one or more Message-ID values.

    ``"<a@x> <b@y>"`` becomes ``"a@x b@y"``.  Values without brackets are
    returned trimmed; empty values become ``None``.
    """
    if not value or not value.strip():
        return None
    ids = _ANGLE_ID.findall(value)
    if ids:
        return " ".join(i.strip() for i in ids)
    return value.strip()


def parse_webhook_form(form: Mapping[str, str]) -> InboundMessage:
    """Map a mail webhook form body 1:1 into an ``InboundMessage``.

    Field lookup is case-insensitive.  Envelope fields (``sender``,
    ``recipient``) take precedence over the ``From``/``To`` headers because
    the envelope recipient carries the tracking alias.  The
    ``message-headers`` JSON list, when present, fills in anything missing.

    Args:
        form: The decoded URL-encoded form fields.

    Returns:
        The parsed inbound message.
    """
    fields = {key.lower(): value for key, value in form.items()}
    headers = parse_message_headers(fields.get("message-headers"))

    def first(*names: str) -> str | None:
        for name in names:
            value = fields.get(name) or headers.get(name)
            if value:
                return value
        return None

    return InboundMessage(
        from_email=first("sender", "from"),
        to=first("recipient", "to"),
        subject=first("subject"),
        body_text=first("stripped-text", "body-plain") or "",
        body_html=first("stripped-html", "body-html"),
        message_id=normalize_message_ids(first("message-id")),
        in_reply_to=normalize_message_ids(first("in-reply-to")),
        references=normalize_message_ids(first("references")),
    )


def html_to_text(html: str) -> str:
    """Strip HTML tags from *html* via regex."""
    return _HTML_TAG.sub("", html)


def extract_latest_reply(full_body: str) -> str:
    """Extract only the latest reply text from an email thread body.

    Uses ``mail-parser-reply`` to strip quoted content, signature blocks,
    and forwarded message headers, returning only the new content from the
    most recent reply.

    If the parser returns an empty string (e.g. the entire message was
    detected as quoted content), the original ``full_body`` is returned
    as a fallback.

    Args:
        full_body: The full text body of the email (may contain quoted
            replies, signatures, etc.).

    Returns:
        The extracted latest reply text, or the original body if
        extraction yields nothing.
    """
    parsed: str = EmailReplyParser(languages=["en"]).parse_reply(text=full_body)
    if not parsed or not parsed.strip():
        return full_body
    return parsed
