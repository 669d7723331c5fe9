"""Ingestion-side duplicate and bot filtering for the event log.

Retried webhook deliveries and repeated tracking beacons produce duplicate
events.  These filters run before events are appended so duplicates rarely
reach the reconstructor, which tolerates them anyway.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import timedelta

from replyagent.domain.models import Event

DEFAULT_DEDUP_WINDOW = timedelta(seconds=30)

# Case-insensitive user-agent fragments that identify link scanners and crawlers.
BOT_USER_AGENT_MARKERS: tuple[str, ...] = ("bot", "crawler", "spider", "facebookexternalhit")


def is_duplicate_event(
    candidate: Event,
    recent: Iterable[Event],
    window: timedelta = DEFAULT_DEDUP_WINDOW,
) -> bool:
    """Return True if *candidate* repeats an event already in *recent*.

    Two events are duplicates when they share tracking id, actor, and event
    type, and their timestamps are within *window* of each other.

    Args:
        candidate: The event about to be appended.
        recent: Previously stored events to compare against.
        window: Maximum time distance between duplicates.

    Returns:
        True if a matching event exists within the window.
    """
    for existing in recent:
        if (
            existing.tracking_id == candidate.tracking_id
            and existing.actor == candidate.actor
            and existing.event_type == candidate.event_type
            and abs(existing.timestamp - candidate.timestamp) <= window
        ):
            return True
    return False


def filter_duplicates(
    events: Iterable[Event],
    window: timedelta = DEFAULT_DEDUP_WINDOW,
) -> list[Event]:
    """Drop events that duplicate an earlier event in the same batch.

    Order is preserved; the first occurrence of each duplicate group is kept.
    """
    kept: list[Event] = []
    for event in events:
        if not is_duplicate_event(event, kept, window):
            kept.append(event)
    return kept


def is_bot_user_agent(user_agent: str | None) -> bool:
    """Return True if *user_agent* looks like a crawler or link scanner."""
    if not user_agent:
        return False
    lowered = user_agent.lower()
    return any(marker in lowered for marker in BOT_USER_AGENT_MARKERS)
