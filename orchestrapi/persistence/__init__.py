"""Conversation persistence (SQLite)."""

from orchestrapi.persistence.conversation_store import ConversationStore
from orchestrapi.persistence.schemas import ConversationTurn, ThreadDetail, ThreadSummary

__all__ = ["ConversationStore", "ConversationTurn", "ThreadDetail", "ThreadSummary"]
