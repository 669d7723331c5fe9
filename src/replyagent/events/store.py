"""Append-only event log backed by SQLite with WAL mode and indexed queries.

The event log is the sole source of truth for conversation state: there is
no conversation table, turns are rebuilt from events on every read.  Rows
are only ever inserted, never updated or deleted.  Uses parameterized
queries exclusively (never string concatenation) to prevent SQL injection.
"""

from __future__ import annotations

import sqlite3
import threading
from datetime import UTC, datetime
from pathlib import Path
from typing import Protocol

import structlog

from replyagent.domain.models import Event
from replyagent.domain.types import EventType

logger = structlog.get_logger()

DEFAULT_QUERY_LIMIT = 1000


class EventStore(Protocol):
    """Read/append interface to the event log consumed by the reply pipeline."""

    def query(
        self,
        *,
        tracking_id: str | None = None,
        event_type: EventType | None = None,
        message_id: str | None = None,
        since: datetime | None = None,
        limit: int = DEFAULT_QUERY_LIMIT,
    ) -> list[Event]: ...

    def append(self, event: Event) -> int: ...


def init_events_db(db_path: Path | str) -> sqlite3.Connection:
    """Create and initialize the event database with WAL mode and indexes.

    The connection may be shared across worker threads; ``SQLiteEventStore``
    serializes access to it.

    Args:
        db_path: Path to the SQLite database file, or ``":memory:"``.

    Returns:
        An open sqlite3.Connection with WAL mode enabled.
    """
    conn = sqlite3.connect(str(db_path), check_same_thread=False)
    conn.execute("PRAGMA journal_mode=WAL")

    conn.execute("""
        CREATE TABLE IF NOT EXISTS events (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            tracking_id TEXT NOT NULL,
            event_type TEXT NOT NULL,
            timestamp TEXT NOT NULL,
            actor TEXT NOT NULL DEFAULT '',
            payload TEXT NOT NULL DEFAULT '',
            message_id TEXT
        )
    """)

    conn.execute("CREATE INDEX IF NOT EXISTS idx_events_tracking ON events (tracking_id)")
    conn.execute("CREATE INDEX IF NOT EXISTS idx_events_type ON events (event_type)")
    conn.execute("CREATE INDEX IF NOT EXISTS idx_events_message ON events (message_id)")

    conn.commit()
    return conn


def close_events_db(conn: sqlite3.Connection) -> None:
    """Close the event database connection."""
    conn.close()


def _format_timestamp(value: datetime) -> str:
    # Fixed-width UTC ISO strings sort lexically in time order.
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat(timespec="microseconds")


class SQLiteEventStore:
    """Append and query events in the SQLite ``events`` table."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        """Initialize with an open database connection.

        Args:
            conn: An open sqlite3.Connection whose database already has the
                  ``events`` table (see ``init_events_db``).
        """
        self._conn = conn
        self._lock = threading.Lock()

    def append(self, event: Event) -> int:
        """Append *event* to the log.

        Args:
            event: The event to store.

        Returns:
            The row ID of the inserted event.
        """
        with self._lock:
            cursor = self._conn.execute(
                """
                INSERT INTO events (
                    tracking_id, event_type, timestamp, actor, payload, message_id
                ) VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    event.tracking_id,
                    event.event_type.value,
                    _format_timestamp(event.timestamp),
                    event.actor,
                    event.payload,
                    event.message_id,
                ),
            )
            self._conn.commit()
        logger.debug(
            "event_appended",
            tracking_id=event.tracking_id,
            event_type=event.event_type.value,
        )
        return cursor.lastrowid or 0

    def query(
        self,
        *,
        tracking_id: str | None = None,
        event_type: EventType | None = None,
        message_id: str | None = None,
        since: datetime | None = None,
        limit: int = DEFAULT_QUERY_LIMIT,
    ) -> list[Event]:
        """Query the event log with optional filters.

        All filters are optional.  When more than ``limit`` events match, the
        most recent ``limit`` are returned.  Results are in insertion order,
        which callers must not rely on for time ordering.

        Args:
            tracking_id: Filter by tracking id (exact match).
            event_type: Filter by event type.
            message_id: Filter by source email Message-ID.
            since: Only events at or after this instant.
            limit: Maximum number of events to return.

        Returns:
            A list of matching events.
        """
        conditions: list[str] = []
        params: list[str | int] = []

        if tracking_id is not None:
            conditions.append("tracking_id = ?")
            params.append(tracking_id)

        if event_type is not None:
            conditions.append("event_type = ?")
            params.append(EventType(event_type).value)

        if message_id is not None:
            conditions.append("message_id = ?")
            params.append(message_id)

        if since is not None:
            conditions.append("timestamp >= ?")
            params.append(_format_timestamp(since))

        where_clause = ""
        if conditions:
            where_clause = "WHERE " + " AND ".join(conditions)

        query = (
            "SELECT tracking_id, event_type, timestamp, actor, payload, message_id "
            f"FROM events {where_clause} ORDER BY id DESC LIMIT ?"
        )
        params.append(limit)

        with self._lock:
            rows = self._conn.execute(query, params).fetchall()

        return [
            Event(
                tracking_id=row[0],
                event_type=EventType(row[1]),
                timestamp=datetime.fromisoformat(row[2]),
                actor=row[3],
                payload=row[4],
                message_id=row[5],
            )
            for row in reversed(rows)
        ]

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        try:
            with self._lock:
                self._conn.execute("SELECT 1").fetchone()
        except sqlite3.Error:
            return False
        return True
