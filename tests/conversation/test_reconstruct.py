"""Tests for conversation reconstruction, stage derivation, and history formatting."""

from __future__ import annotations

import itertools
from datetime import UTC, datetime, timedelta

import pytest

from replyagent.conversation.reconstruct import (
    conversation_stage,
    format_history,
    reconstruct_conversation,
)
from replyagent.domain.models import ConversationTurn, Event
from replyagent.domain.types import ConversationStage, EventType, TurnStatus

T0 = datetime(2026, 10, 16, 9, 0, tzinfo=UTC)


def _lead(seconds: int, text: str = "Hi", tracking_id: str = "abc123") -> Event:
    return Event(
        tracking_id=tracking_id,
        event_type=EventType.LEAD_MESSAGE,
        timestamp=T0 + timedelta(seconds=seconds),
        actor="ana@example.com",
        payload=text,
    )


def _reply(seconds: int, text: str = "Hello", tracking_id: str = "abc123") -> Event:
    return Event(
        tracking_id=tracking_id,
        event_type=EventType.AI_REPLY,
        timestamp=T0 + timedelta(seconds=seconds),
        actor="ana@example.com",
        payload=text,
    )


def _telemetry(seconds: int, event_type: EventType = EventType.EMAIL_OPEN) -> Event:
    return Event(
        tracking_id="abc123",
        event_type=event_type,
        timestamp=T0 + timedelta(seconds=seconds),
        actor="Mozilla/5.0",
    )


# ---------------------------------------------------------------------------
# reconstruct_conversation
# ---------------------------------------------------------------------------


class TestPairing:
    def test_lead_then_reply_is_one_complete_turn(self) -> None:
        turns = reconstruct_conversation([_lead(0, "Hi"), _reply(10, "Hello")], "abc123")

        assert len(turns) == 1
        assert turns[0].lead_message == "Hi"
        assert turns[0].ai_response == "Hello"
        assert turns[0].status == TurnStatus.COMPLETE
        assert turns[0].timestamp == T0

    def test_sender_and_recipient(self) -> None:
        (turn,) = reconstruct_conversation([_lead(0), _reply(10)], "abc123")
        assert turn.sender == "ana@example.com"
        assert turn.recipient == "ana@example.com"

    def test_multiple_exchanges(self) -> None:
        events = [_lead(0, "a"), _reply(1, "b"), _lead(2, "c"), _reply(3, "d")]

        turns = reconstruct_conversation(events, "abc123")

        assert [(t.lead_message, t.ai_response) for t in turns] == [("a", "b"), ("c", "d")]

    def test_trailing_lead_is_pending(self) -> None:
        turns = reconstruct_conversation([_lead(0), _reply(1), _lead(2, "again")], "abc123")

        assert turns[-1].lead_message == "again"
        assert turns[-1].status == TurnStatus.PENDING


class TestDuplicatesAndOrphans:
    def test_two_leads_without_reply_make_two_turns(self) -> None:
        turns = reconstruct_conversation([_lead(0, "first"), _lead(5, "second")], "abc123")

        assert [t.lead_message for t in turns] == ["first", "second"]
        assert all(t.status == TurnStatus.PENDING for t in turns)
        assert all(t.ai_response is None for t in turns)

    def test_reply_pairs_with_latest_lead(self) -> None:
        turns = reconstruct_conversation(
            [_lead(0, "first"), _lead(5, "second"), _reply(10, "answer")], "abc123"
        )

        assert turns[0].status == TurnStatus.PENDING
        assert turns[1].lead_message == "second"
        assert turns[1].ai_response == "answer"

    def test_reply_without_lead_is_orphaned(self) -> None:
        turns = reconstruct_conversation([_reply(0, "cold outreach")], "abc123")

        assert len(turns) == 1
        assert turns[0].lead_message is None
        assert turns[0].ai_response == "cold outreach"
        assert turns[0].status == TurnStatus.ORPHANED

    def test_second_reply_after_pairing_is_orphaned(self) -> None:
        turns = reconstruct_conversation([_lead(0), _reply(1, "a"), _reply(2, "b")], "abc123")

        assert [t.status for t in turns] == [TurnStatus.COMPLETE, TurnStatus.ORPHANED]

    def test_exact_duplicate_events(self) -> None:
        lead = _lead(0)
        turns = reconstruct_conversation([lead, lead], "abc123")
        assert len(turns) == 2


class TestFiltering:
    def test_other_tracking_ids_are_skipped(self) -> None:
        events = [_lead(0, "mine"), _lead(1, "theirs", tracking_id="other"), _reply(2)]

        turns = reconstruct_conversation(events, "abc123")

        assert len(turns) == 1
        assert turns[0].lead_message == "mine"

    def test_tracking_id_is_trimmed(self) -> None:
        events = [_lead(0, tracking_id=" abc123 "), _reply(1, tracking_id="abc123\n")]

        turns = reconstruct_conversation(events, "  abc123")

        assert len(turns) == 1
        assert turns[0].tracking_id == "abc123"

    def test_telemetry_does_not_break_pairing(self) -> None:
        events = [
            _telemetry(0),
            _lead(1),
            _telemetry(2, EventType.LINK_CLICK),
            _reply(3),
            _telemetry(4),
        ]

        turns = reconstruct_conversation(events, "abc123")

        assert len(turns) == 1
        assert turns[0].status == TurnStatus.COMPLETE

    def test_empty_slice(self) -> None:
        assert reconstruct_conversation([], "abc123") == []

    def test_only_telemetry(self) -> None:
        assert reconstruct_conversation([_telemetry(0), _telemetry(1)], "abc123") == []


class TestOrdering:
    def test_unsorted_input_is_sorted(self) -> None:
        turns = reconstruct_conversation([_reply(10, "Hello"), _lead(0, "Hi")], "abc123")

        assert len(turns) == 1
        assert turns[0].status == TurnStatus.COMPLETE

    def test_ties_keep_slice_order(self) -> None:
        turns = reconstruct_conversation([_lead(0, "Hi"), _reply(0, "Hello")], "abc123")
        assert turns[0].status == TurnStatus.COMPLETE

        turns = reconstruct_conversation([_reply(0, "Hello"), _lead(0, "Hi")], "abc123")
        assert [t.status for t in turns] == [TurnStatus.ORPHANED, TurnStatus.PENDING]

    @pytest.mark.parametrize(
        "order",
        list(itertools.permutations(range(5))),
    )
    def test_turns_non_decreasing_for_any_input_order(self, order: tuple[int, ...]) -> None:
        events = [_lead(0), _reply(5), _lead(7), _lead(9), _reply(12)]
        shuffled = [events[i] for i in order]

        turns = reconstruct_conversation(shuffled, "abc123")

        timestamps = [t.timestamp for t in turns]
        assert timestamps == sorted(timestamps)

    @pytest.mark.parametrize(
        "order",
        list(itertools.permutations(range(5))),
    )
    def test_every_message_event_lands_in_one_turn(self, order: tuple[int, ...]) -> None:
        events = [_lead(0, "a"), _reply(5, "b"), _lead(7, "c"), _lead(9, "d"), _reply(12, "e")]
        shuffled = [events[i] for i in order]

        turns = reconstruct_conversation(shuffled, "abc123")

        flattened = [
            text for t in turns for text in (t.lead_message, t.ai_response) if text is not None
        ]
        assert sorted(flattened) == ["a", "b", "c", "d", "e"]

    def test_superset_slice_gives_same_turns(self) -> None:
        events = [_lead(0), _reply(1)]
        noisy = [*events, _lead(2, tracking_id="other"), _telemetry(3)]

        assert reconstruct_conversation(noisy, "abc123") == reconstruct_conversation(
            events, "abc123"
        )


# ---------------------------------------------------------------------------
# conversation_stage
# ---------------------------------------------------------------------------


def _turn(lead: str | None = "Hi", reply: str | None = None) -> ConversationTurn:
    return ConversationTurn(tracking_id="abc123", timestamp=T0, lead_message=lead, ai_response=reply)


class TestConversationStage:
    def test_new(self) -> None:
        assert conversation_stage([]) == ConversationStage.NEW

    def test_orphaned_replies_do_not_count(self) -> None:
        assert conversation_stage([_turn(lead=None, reply="x")]) == ConversationStage.NEW

    def test_active(self) -> None:
        assert conversation_stage([_turn()]) == ConversationStage.ACTIVE

    def test_engaged_at_threshold(self) -> None:
        assert conversation_stage([_turn(), _turn()]) == ConversationStage.ENGAGED

    def test_custom_threshold(self) -> None:
        turns = [_turn(), _turn()]
        assert conversation_stage(turns, question_threshold=3) == ConversationStage.ACTIVE


# ---------------------------------------------------------------------------
# format_history
# ---------------------------------------------------------------------------


class TestFormatHistory:
    def test_lines(self) -> None:
        turns = [_turn("Hi", "Hello"), _turn("Pricing?", None)]

        assert format_history(turns) == "Lead: Hi\nAssistant: Hello\nLead: Pricing?"

    def test_max_turns_keeps_most_recent(self) -> None:
        turns = [_turn("one", "r1"), _turn("two", "r2"), _turn("three", None)]

        assert format_history(turns, max_turns=1) == "Lead: three"

    def test_zero_max_turns(self) -> None:
        assert format_history([_turn()], max_turns=0) == ""

    def test_empty(self) -> None:
        assert format_history([]) == ""
