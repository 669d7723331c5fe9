"""Sentry SDK initialization with structlog-sentry bridge.

Provides:
- ``init_sentry(dsn)``: Initialize Sentry SDK.  No-op when *dsn* is empty.
- ``strip_request_body(event, hint)``: ``before_send`` hook that drops the
  request body, which for the mail webhook is a lead's email.
- ``get_sentry_processor()``: Return a structlog processor that forwards
  ERROR-level log events to Sentry.
"""

from __future__ import annotations

import logging
from typing import Any

import sentry_sdk
import structlog
from sentry_sdk.integrations.logging import LoggingIntegration
from structlog_sentry import SentryProcessor


def strip_request_body(event: dict[str, Any], hint: dict[str, Any]) -> dict[str, Any]:
    """Remove form/JSON payloads and cookies from an outgoing Sentry event."""
    request = event.get("request")
    if isinstance(request, dict):
        request.pop("data", None)
        request.pop("cookies", None)
    return event


def init_sentry(dsn: str, environment: str = "development") -> bool:
    """Initialize Sentry SDK with the given *dsn*.

    When *dsn* is empty the function returns immediately -- no network calls,
    no SDK initialization.  Safe to call unconditionally at startup.

    Args:
        dsn: Sentry DSN string.  Empty string disables Sentry.
        environment: Environment tag attached to events.

    Returns:
        True if the SDK was initialized.
    """
    if not dsn:
        return False

    sentry_sdk.init(
        dsn=dsn,
        environment=environment,
        traces_sample_rate=0.1,
        send_default_pii=False,
        max_request_body_size="never",
        before_send=strip_request_body,
        integrations=[
            # structlog-sentry reports errors; stdlib logging capture would duplicate them.
            LoggingIntegration(event_level=None, level=None),
        ],
    )
    return True


def get_sentry_processor() -> structlog.types.Processor:
    """Return the structlog processor that forwards ERROR events to Sentry.

    ``configure_logging`` places it after ``add_log_level`` so the level is
    known when the processor runs.
    """
    return SentryProcessor(event_level=logging.ERROR)
