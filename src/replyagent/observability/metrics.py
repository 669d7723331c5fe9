"""Prometheus metrics instrumentation for the reply agent.

Provides:
- ``setup_metrics(app)``: Attach prometheus-fastapi-instrumentator to a FastAPI app,
  exposing ``/metrics`` with HTTP request duration/count plus custom business counters.
- ``REPLIES_GENERATED``: Counter of reply skeletons produced, labelled by intent.
- ``TRACKING_MISSES``: Counter of inbound messages with no recoverable tracking id.
- ``ENHANCEMENT_FALLBACKS``: Counter of AI enhancements discarded for the skeleton.
- ``ESCALATIONS``: Counter of replies held back for a human.

Business metrics are updated by the reply pipeline as each message is processed.
"""

from __future__ import annotations

from fastapi import FastAPI
from prometheus_client import Counter
from prometheus_fastapi_instrumentator import Instrumentator

REPLIES_GENERATED: Counter = Counter(
    "replyagent_replies_generated_total",
    "Total number of reply skeletons generated",
    ["intent"],
)

TRACKING_MISSES: Counter = Counter(
    "replyagent_tracking_misses_total",
    "Inbound messages ignored because no tracking id was found",
)

ENHANCEMENT_FALLBACKS: Counter = Counter(
    "replyagent_enhancement_fallbacks_total",
    "AI enhancements discarded in favour of the template skeleton",
    ["reason"],
)

ESCALATIONS: Counter = Counter(
    "replyagent_escalations_total",
    "Replies held for human review instead of being sent",
)


def setup_metrics(app: FastAPI) -> None:
    """Instrument *app* with Prometheus HTTP metrics and expose ``/metrics``.

    Excludes health/ready/metrics endpoints from instrumentation to avoid
    noise in dashboards.

    Args:
        app: The FastAPI application to instrument.
    """
    Instrumentator(
        should_group_status_codes=True,
        should_ignore_untemplated=True,
        excluded_handlers=["/health", "/ready", "/metrics"],
    ).instrument(app).expose(app, include_in_schema=False, should_gzip=True)
