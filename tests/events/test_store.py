"""Tests for the SQLite append-only event store."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone
from pathlib import Path

from replyagent.domain.models import Event
from replyagent.domain.types import EventType
from replyagent.events.store import SQLiteEventStore, close_events_db, init_events_db

T0 = datetime(2026, 10, 16, 9, 0, tzinfo=UTC)


def _event(
    event_type: EventType = EventType.LEAD_MESSAGE,
    seconds: int = 0,
    tracking_id: str = "abc123",
    **fields: str,
) -> Event:
    return Event(
        tracking_id=tracking_id,
        event_type=event_type,
        timestamp=T0 + timedelta(seconds=seconds),
        **fields,
    )


class TestInitEventsDb:
    def test_creates_table_and_indexes(self, tmp_path: Path) -> None:
        conn = init_events_db(tmp_path / "events.db")

        tables = {r[0] for r in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")}
        indexes = {r[0] for r in conn.execute("SELECT name FROM sqlite_master WHERE type='index'")}

        assert "events" in tables
        assert {"idx_events_tracking", "idx_events_type", "idx_events_message"} <= indexes
        close_events_db(conn)

    def test_wal_mode(self, tmp_path: Path) -> None:
        conn = init_events_db(tmp_path / "events.db")
        mode = conn.execute("PRAGMA journal_mode").fetchone()[0]
        assert mode == "wal"
        close_events_db(conn)

    def test_idempotent(self, tmp_path: Path) -> None:
        path = tmp_path / "events.db"
        close_events_db(init_events_db(path))
        conn = init_events_db(path)
        assert SQLiteEventStore(conn).query() == []
        close_events_db(conn)


class TestAppend:
    def test_returns_row_ids(self, event_store: SQLiteEventStore) -> None:
        first = event_store.append(_event())
        second = event_store.append(_event(EventType.AI_REPLY, 1))
        assert second == first + 1

    def test_round_trips_fields(self, event_store: SQLiteEventStore) -> None:
        original = _event(
            actor="ana@example.com", payload="Sounds good", message_id="CAF123@mail.example.com"
        )
        event_store.append(original)

        (stored,) = event_store.query()

        assert stored == original
        assert stored.timestamp.tzinfo is not None


class TestQuery:
    def test_filter_by_tracking_id(self, event_store: SQLiteEventStore) -> None:
        event_store.append(_event(tracking_id="abc123"))
        event_store.append(_event(tracking_id="other"))

        results = event_store.query(tracking_id="abc123")

        assert [e.tracking_id for e in results] == ["abc123"]

    def test_filter_by_event_type(self, event_store: SQLiteEventStore) -> None:
        event_store.append(_event(EventType.LEAD_MESSAGE))
        event_store.append(_event(EventType.EMAIL_OPEN, 1))

        results = event_store.query(event_type=EventType.EMAIL_OPEN)

        assert [e.event_type for e in results] == [EventType.EMAIL_OPEN]

    def test_filter_by_message_id(self, event_store: SQLiteEventStore) -> None:
        event_store.append(_event(message_id="m1@x"))
        event_store.append(_event(seconds=1, message_id="m2@x"))

        results = event_store.query(message_id="m2@x")

        assert len(results) == 1
        assert results[0].message_id == "m2@x"

    def test_filter_since(self, event_store: SQLiteEventStore) -> None:
        event_store.append(_event(seconds=0, payload="old"))
        event_store.append(_event(seconds=60, payload="new"))

        results = event_store.query(since=T0 + timedelta(seconds=30))

        assert [e.payload for e in results] == ["new"]

    def test_since_accepts_other_timezones(self, event_store: SQLiteEventStore) -> None:
        event_store.append(_event(seconds=60, payload="new"))
        # 09:00:30 UTC expressed as 05:00:30 at UTC-4
        eastern = (T0 + timedelta(seconds=30)).astimezone(timezone(timedelta(hours=-4)))

        results = event_store.query(since=eastern)

        assert [e.payload for e in results] == ["new"]

    def test_combined_filters(self, event_store: SQLiteEventStore) -> None:
        event_store.append(_event(EventType.LEAD_MESSAGE, tracking_id="abc123"))
        event_store.append(_event(EventType.AI_REPLY, 1, tracking_id="abc123"))
        event_store.append(_event(EventType.LEAD_MESSAGE, 2, tracking_id="other"))

        results = event_store.query(tracking_id="abc123", event_type=EventType.LEAD_MESSAGE)

        assert len(results) == 1

    def test_insertion_order(self, event_store: SQLiteEventStore) -> None:
        # Appended out of time order; query preserves append order.
        event_store.append(_event(seconds=10, payload="second"))
        event_store.append(_event(seconds=0, payload="first"))

        assert [e.payload for e in event_store.query()] == ["second", "first"]

    def test_limit_keeps_most_recent(self, event_store: SQLiteEventStore) -> None:
        for i in range(5):
            event_store.append(_event(seconds=i, payload=str(i)))

        results = event_store.query(limit=2)

        assert [e.payload for e in results] == ["3", "4"]

    def test_no_match(self, event_store: SQLiteEventStore) -> None:
        assert event_store.query(tracking_id="missing") == []


class TestPing:
    def test_ok(self, event_store: SQLiteEventStore) -> None:
        assert event_store.ping() is True

    def test_closed_connection(self) -> None:
        conn = init_events_db(":memory:")
        store = SQLiteEventStore(conn)
        conn.close()
        assert store.ping() is False
