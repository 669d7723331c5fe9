"""Build and record telemetry events for opens and link clicks.

Only the event record is produced here; serving the tracking pixel or the
redirect is the HTTP layer's concern.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import structlog

from replyagent.domain.models import Event
from replyagent.domain.types import EventType
from replyagent.events.dedup import DEFAULT_DEDUP_WINDOW, is_bot_user_agent, is_duplicate_event
from replyagent.events.store import EventStore

logger = structlog.get_logger()


def build_open_event(
    tracking_id: str,
    user_agent: str = "",
    timestamp: datetime | None = None,
) -> Event:
    """Build an ``email_open`` event for a tracking pixel hit."""
    return Event(
        tracking_id=tracking_id.strip(),
        event_type=EventType.EMAIL_OPEN,
        timestamp=timestamp or datetime.now(tz=UTC),
        actor=user_agent,
    )


def build_click_event(
    tracking_id: str,
    url: str,
    user_agent: str = "",
    timestamp: datetime | None = None,
) -> Event:
    """Build a ``link_click`` event; the clicked URL goes in the payload."""
    return Event(
        tracking_id=tracking_id.strip(),
        event_type=EventType.LINK_CLICK,
        timestamp=timestamp or datetime.now(tz=UTC),
        actor=user_agent,
        payload=url,
    )


def record_telemetry(
    store: EventStore,
    event: Event,
    window: timedelta | None = None,
) -> bool:
    """Append a telemetry event unless it is from a bot or a recent duplicate.

    Args:
        store: The event log.
        event: An ``email_open`` or ``link_click`` event.
        window: Dedup window; defaults to ``DEFAULT_DEDUP_WINDOW``.

    Returns:
        True if the event was appended.
    """
    if is_bot_user_agent(event.actor):
        logger.info("telemetry_bot_filtered", tracking_id=event.tracking_id)
        return False

    window = DEFAULT_DEDUP_WINDOW if window is None else window
    recent = store.query(
        tracking_id=event.tracking_id,
        event_type=event.event_type,
        since=event.timestamp - window,
    )
    if is_duplicate_event(event, recent, window):
        logger.info(
            "telemetry_duplicate_skipped",
            tracking_id=event.tracking_id,
            event_type=event.event_type.value,
        )
        return False

    store.append(event)
    return True
