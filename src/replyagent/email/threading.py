"""Reply header management for tracked email threads.

Provides helpers for:
- Building RFC 2822 reply headers that keep the lead's thread intact
- Embedding the tracking id in ``Message-ID`` and ``Reply-To`` so the lead's
  next reply can be correlated
"""

from __future__ import annotations

import secrets
import time

from replyagent.email.models import InboundMessage, OutboundEmail
from replyagent.email.tracking import TRACKING_PREFIX


def reply_subject(subject: str | None) -> str:
    """Prefix *subject* with ``Re: `` unless it already has it (case-insensitive)."""
    subject = (subject or "").strip()
    if subject.lower().startswith("re:"):
        return subject
    return f"Re: {subject}" if subject else "Re:"


def tracking_message_id(tracking_id: str, domain: str, now_ms: int | None = None) -> str:
    """Generate a Message-ID that carries *tracking_id*.

    The id has the form ``tracking-<id>-<unix_ms>-<hex8>@<domain>`` (without
    angle brackets).
    """
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"{TRACKING_PREFIX}{tracking_id}-{now_ms}-{secrets.token_hex(4)}@{domain}"


def build_reply_headers(
    inbound: InboundMessage,
    tracking_id: str,
    domain: str,
    now_ms: int | None = None,
) -> dict[str, str]:
    """Build RFC 2822 headers for a tracked reply to *inbound*.

    Generates the ``In-Reply-To``, ``References``, ``Subject``, ``To``,
    ``Message-ID`` and ``Reply-To`` headers.  ``References`` appends the
    inbound Message-ID to the inbound ``References`` chain.  Threading
    headers are omitted when the inbound message had no Message-ID.

    Args:
        inbound: The lead's inbound reply.
        tracking_id: The conversation's tracking id.
        domain: The sending mail domain.
        now_ms: Timestamp in milliseconds used in the Message-ID.

    Returns:
        A dict of header names to values.  Message-ID values are wrapped in
        angle brackets.
    """
    headers = {
        "To": inbound.from_email or "",
        "Subject": reply_subject(inbound.subject),
        "Message-ID": f"<{tracking_message_id(tracking_id, domain, now_ms)}>",
        "Reply-To": f"{TRACKING_PREFIX}{tracking_id}@{domain}",
    }

    if inbound.message_id:
        chain = (inbound.references or "").split()
        if inbound.message_id not in chain:
            chain.append(inbound.message_id)
        headers["In-Reply-To"] = f"<{inbound.message_id}>"
        headers["References"] = " ".join(f"<{mid}>" for mid in chain)

    return headers


def build_outbound_reply(
    inbound: InboundMessage,
    body: str,
    tracking_id: str,
    domain: str,
    now_ms: int | None = None,
) -> OutboundEmail:
    """Wrap a reply body in an ``OutboundEmail`` threaded onto *inbound*."""
    headers = build_reply_headers(inbound, tracking_id, domain, now_ms)
    return OutboundEmail(
        to=headers["To"],
        subject=headers["Subject"],
        body=body,
        message_id=headers["Message-ID"],
        reply_to=headers["Reply-To"],
        in_reply_to=headers.get("In-Reply-To"),
        references=headers.get("References"),
    )
