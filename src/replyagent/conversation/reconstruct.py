"""Rebuild conversation turns from the append-only event log.

Conversation state is never stored.  Each read folds the raw event slice for
a tracking id into an ordered list of ``ConversationTurn`` values, so the
result can always be recomputed from a superset of the same events.
"""

from __future__ import annotations

from collections.abc import Iterable

from replyagent.domain.models import ConversationTurn, Event
from replyagent.domain.types import ConversationStage, EventType


def reconstruct_conversation(events: Iterable[Event], tracking_id: str) -> list[ConversationTurn]:
    """Pair lead messages with AI replies for one conversation.

    The slice may contain events for other tracking ids and telemetry
    events; both are skipped.  Events are ordered by timestamp with a stable
    sort, so ties keep their slice order.

    Walk rules:

    - ``lead_message`` flushes any pending turn unchanged and opens a new one.
      Two lead messages in a row therefore yield two turns.
    - ``ai_reply`` completes the open pending turn, or is emitted as a
      standalone orphaned turn when nothing is open.
    - A turn still open at the end is emitted as pending.

    Args:
        events: Raw events in any order.
        tracking_id: The conversation to rebuild (compared after trimming).

    Returns:
        Turns in non-decreasing timestamp order.  Every ``lead_message`` and
        ``ai_reply`` event for the conversation lands in exactly one turn.
    """
    target = tracking_id.strip()
    relevant = [e for e in events if e.tracking_id.strip() == target]
    relevant.sort(key=lambda e: e.timestamp)

    turns: list[ConversationTurn] = []
    open_turn: ConversationTurn | None = None

    for event in relevant:
        if event.event_type == EventType.LEAD_MESSAGE:
            if open_turn is not None:
                turns.append(open_turn)
            open_turn = ConversationTurn(
                tracking_id=target,
                timestamp=event.timestamp,
                lead_message=event.payload,
                sender=event.actor,
            )
        elif event.event_type == EventType.AI_REPLY:
            if open_turn is not None:
                turns.append(
                    open_turn.model_copy(
                        update={"ai_response": event.payload, "recipient": event.actor}
                    )
                )
                open_turn = None
            else:
                turns.append(
                    ConversationTurn(
                        tracking_id=target,
                        timestamp=event.timestamp,
                        ai_response=event.payload,
                        recipient=event.actor,
                    )
                )

    if open_turn is not None:
        turns.append(open_turn)

    return turns


def conversation_stage(
    turns: Iterable[ConversationTurn],
    question_threshold: int = 2,
) -> ConversationStage:
    """Derive how far a conversation has progressed.

    A conversation is ``engaged`` once the lead has written at least
    *question_threshold* messages, ``active`` after the first one, and
    ``new`` before that.
    """
    lead_messages = sum(1 for turn in turns if turn.lead_message is not None)
    if lead_messages >= question_threshold:
        return ConversationStage.ENGAGED
    if lead_messages > 0:
        return ConversationStage.ACTIVE
    return ConversationStage.NEW


def format_history(turns: Iterable[ConversationTurn], max_turns: int | None = None) -> str:
    """Render turns as plain text for use as LLM context.

    Args:
        turns: Reconstructed turns, oldest first.
        max_turns: Keep only the most recent N turns when set.

    Returns:
        One ``Lead:`` / ``Assistant:`` line per message, or an empty string.
    """
    selected = list(turns)
    if max_turns is not None:
        selected = selected[-max_turns:] if max_turns > 0 else []

    lines: list[str] = []
    for turn in selected:
        if turn.lead_message is not None:
            lines.append(f"Lead: {turn.lead_message.strip()}")
        if turn.ai_response is not None:
            lines.append(f"Assistant: {turn.ai_response.strip()}")
    return "\n".join(lines)
