"""Schemas for persisted conversation data."""

from typing import Any, Literal, Optional

from pydantic import BaseModel, Field


class ConversationTurn(BaseModel):
    """One stored message of a thread. Timestamps are epoch milliseconds."""

    id: Optional[str] = None
    thread_id: str
    role: Literal["user", "assistant", "tool"]
    content: str
    timestamp: int
    trace: Optional[dict[str, Any]] = Field(
        default=None, description="ReasoningTrace for assistant turns"
    )


class ThreadSummary(BaseModel):
    thread_id: str
    title: str = ""
    last_updated: int


class ThreadDetail(BaseModel):
    """A thread with its full message history."""

    thread_id: str
    title: str = ""
    last_updated: Optional[int] = None
    messages: list[ConversationTurn] = Field(default_factory=list)
