"""Append-only event log: storage, ingestion dedup, and telemetry events."""

from replyagent.events.dedup import (
    DEFAULT_DEDUP_WINDOW,
    filter_duplicates,
    is_bot_user_agent,
    is_duplicate_event,
)
from replyagent.events.store import (
    EventStore,
    SQLiteEventStore,
    close_events_db,
    init_events_db,
)
from replyagent.events.telemetry import build_click_event, build_open_event, record_telemetry

__all__ = [
    "DEFAULT_DEDUP_WINDOW",
    "EventStore",
    "SQLiteEventStore",
    "build_click_event",
    "build_open_event",
    "close_events_db",
    "filter_duplicates",
    "init_events_db",
    "is_bot_user_agent",
    "is_duplicate_event",
    "record_telemetry",
]
