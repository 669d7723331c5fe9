"""Tracking id correlation for inbound email replies.

A tracking id ties every inbound reply to the outbound message that started
the conversation.  It can survive the round trip in several places, and
``extract_tracking_id`` checks them in a fixed order of confidence:

1. Recipient address ``tracking-<token>@domain``
2. Subject tag ``[<token>]``
3. Body declaration ``tracking id: <token>``
4. ``In-Reply-To`` header containing ``tracking-<id>``
5. ``References`` header containing ``tracking-<id>``

The first method that matches wins, even when a later one would yield a
different token (e.g. a stale subject tag on a forwarded thread).

Subject tags and body declarations only count when the token contains a
digit.  Gateway markers such as ``[EXTERNAL]`` and prose such as "tracking id
is ZX9" therefore fall through to the next method instead of correlating
unrelated replies.
"""

from __future__ import annotations

import re
import secrets
import time

from replyagent.email.models import InboundMessage

TRACKING_PREFIX = "tracking-"

_RECIPIENT_PATTERN = re.compile(r"(?<![\w.+-])tracking-([^@\s<>,;\"']+)@")
# Subject and body tokens must contain a digit.
_TOKEN = r"(?=[\w.-]*\d)[\w.-]+"
_SUBJECT_TAG_PATTERN = re.compile(r"\[\s*(" + _TOKEN + r")\s*\]")
_BODY_PATTERN = re.compile(r"tracking[_ ]?id[:\s]*(" + _TOKEN + r")\b", re.IGNORECASE)
# Message-IDs written by build_reply_headers: tracking-<id>-<unix_ms>-<hex8>@domain.
_OUTBOUND_MESSAGE_ID_PATTERN = re.compile(r"tracking-([\w.-]+?)-\d+-[0-9a-fA-F]{8}@")
# Other header ids are either 32 hex chars or the generated <user_code>_<ms>_<hex> form.
_HEADER_PATTERN = re.compile(
    r"tracking-([0-9a-fA-F]{8}_\d+_[0-9a-fA-F]+|[0-9a-fA-F]{32}(?![0-9a-fA-F]))"
)
_USER_CODE_PATTERN = re.compile(r"^([0-9a-f]{8})_\d+_[0-9a-f]+$")
_HTML_TAG = re.compile(r"<[^>]+>")


def _search(pattern: re.Pattern[str], text: str | None) -> str | None:
    if not text:
        return None
    match = pattern.search(text)
    if match is None:
        return None
    token = match.group(1).strip()
    return token or None


def from_recipient(to: str | None) -> str | None:
    """Return the token embedded in a ``tracking-<token>@`` recipient."""
    return _search(_RECIPIENT_PATTERN, to)


def from_subject(subject: str | None) -> str | None:
    """Return the first ``[<token>]`` tag in a subject line whose token has a digit."""
    return _search(_SUBJECT_TAG_PATTERN, subject)


def from_body(body_text: str | None, body_html: str | None = None) -> str | None:
    """Return the token declared as ``tracking id: <token>`` in the body.

    The plain-text body is searched first; the HTML body is searched with
    tags stripped only when the plain body has no declaration.
    """
    token = _search(_BODY_PATTERN, body_text)
    if token is None and body_html:
        token = _search(_BODY_PATTERN, _HTML_TAG.sub(" ", body_html))
    return token


def from_header(value: str | None) -> str | None:
    """Return the tracking id embedded in a Message-ID style header value.

    Message-IDs this service writes (``tracking-<id>-<unix_ms>-<hex8>@domain``)
    yield ``<id>`` whatever its shape; other ids must be 32 hex chars or the
    generated ``<user_code>_<ms>_<hex>`` form.
    """
    return _search(_OUTBOUND_MESSAGE_ID_PATTERN, value) or _search(_HEADER_PATTERN, value)


def extract_tracking_id(message: InboundMessage) -> str | None:
    """Recover the conversation's tracking id from an inbound message.

    Pure and total: returns ``None`` when no method matches and never
    raises.

    Args:
        message: The inbound reply.

    Returns:
        The tracking id token, or ``None`` if none was found.
    """
    return (
        from_recipient(message.to)
        or from_subject(message.subject)
        or from_body(message.body_text, message.body_html)
        or from_header(message.in_reply_to)
        or from_header(message.references)
    )


def new_tracking_id(user_code: str, now_ms: int | None = None) -> str:
    """Generate a tracking id for a new outbound conversation.

    The id has the form ``<user_code>_<unix_ms>_<hex8>`` so the owning
    user can be recovered from any reply.

    Args:
        user_code: The 8-hex-character code of the sending user.
        now_ms: Timestamp in milliseconds; defaults to the current time.

    Returns:
        The new tracking id (without the ``tracking-`` prefix).
    """
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"{user_code}_{now_ms}_{secrets.token_hex(4)}"


def user_code_from_tracking_id(tracking_id: str | None) -> str | None:
    """Return the user code embedded in a generated tracking id, if any."""
    if not tracking_id:
        return None
    match = _USER_CODE_PATTERN.match(tracking_id.strip())
    return match.group(1) if match else None
