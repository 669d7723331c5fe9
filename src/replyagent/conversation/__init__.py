"""Conversation view derived from the event log."""

from replyagent.conversation.reconstruct import (
    conversation_stage,
    format_history,
    reconstruct_conversation,
)

__all__ = [
    "conversation_stage",
    "format_history",
    "reconstruct_conversation",
]
