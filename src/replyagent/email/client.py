"""Mailgun HTTP API client for sending tracked replies.

Provides the ``MailgunClient`` class that posts an ``OutboundEmail`` to the
Mailgun messages endpoint, carrying the tracking headers as ``h:`` fields.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from replyagent.email.models import OutboundEmail
from replyagent.resilience.retry import resilient_api_call

logger = structlog.get_logger()

MAILGUN_API_BASE = "https://api.mailgun.net/v3"


class MailgunClient:
    """Wrapper around the Mailgun messages API.

    Transport goes through the provided ``httpx.Client`` so tests can inject
    a mock transport.

    Args:
        api_key: The Mailgun private API key.
        domain: The sending domain registered with Mailgun.
        sender: The ``From`` address, e.g. ``"AI Assistant <ai@mg.example.com>"``.
        http_client: Optional pre-configured ``httpx.Client``.
        api_base: Base URL of the Mailgun API (EU accounts use a different host).
    """

    def __init__(
        self,
        api_key: str,
        domain: str,
        sender: str,
        http_client: httpx.Client | None = None,
        api_base: str = MAILGUN_API_BASE,
    ) -> None:
        self._api_key = api_key
        self._domain = domain
        self._sender = sender
        self._http = http_client or httpx.Client(timeout=30.0)
        self._api_base = api_base.rstrip("/")

    @property
    def domain(self) -> str:
        """The sending domain, also used in tracking Message-IDs."""
        return self._domain

    def build_form(self, outbound: OutboundEmail) -> dict[str, str]:
        """Build the Mailgun form fields for *outbound*."""
        form = {
            "from": self._sender,
            "to": outbound.to,
            "subject": outbound.subject,
            "text": outbound.body,
        }
        if outbound.message_id:
            form["h:Message-Id"] = outbound.message_id
        if outbound.reply_to:
            form["h:Reply-To"] = outbound.reply_to
        if outbound.in_reply_to:
            form["h:In-Reply-To"] = outbound.in_reply_to
        if outbound.references:
            form["h:References"] = outbound.references
        return form

    @resilient_api_call("mailgun")
    def send(self, outbound: OutboundEmail) -> dict[str, Any]:
        """Send an email through Mailgun.

        Args:
            outbound: The email to send.

        Returns:
            The Mailgun API response dict (contains ``id`` and ``message``).

        Raises:
            httpx.HTTPStatusError: If the API returns a non-2xx status after
                all retries.
        """
        response = self._http.post(
            f"{self._api_base}/{self._domain}/messages",
            auth=("api", self._api_key),
            data=self.build_form(outbound),
        )
        response.raise_for_status()
        result = dict(response.json())
        logger.info("email_sent", to=outbound.to, mailgun_id=result.get("id"))
        return result

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self._http.close()
