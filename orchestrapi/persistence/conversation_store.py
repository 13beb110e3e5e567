"""Conversation storage: append-only turn log plus per-thread summary.

Writes are append (turns) or replace-by-id (threads). There is no
compare-and-swap, so two runs against the same thread at once can leave
the summary reflecting whichever finished last.
"""

import logging
import uuid
from typing import Optional

from orchestrapi.persistence.db import _json_dumps, _json_loads, execute, init_db
from orchestrapi.persistence.schemas import ConversationTurn, ThreadSummary

logger = logging.getLogger(__name__)


def _row_to_turn(row: dict) -> ConversationTurn:
    return ConversationTurn(
        id=row["id"],
        thread_id=row["thread_id"],
        role=row["role"],
        content=row["content"],
        timestamp=row["timestamp"],
        trace=_json_loads(row.get("trace")),
    )


class ConversationStore:
    """SQLite-backed store for turns and thread summaries."""

    def __init__(self, max_history_length: int = 1000):
        self.max_history_length = max_history_length
        init_db()

    def insert_turn(self, turn: ConversationTurn) -> ConversationTurn:
        """Append a turn; an id is generated when the turn has none."""
        if not turn.id:
            turn = turn.model_copy(update={"id": uuid.uuid4().hex})
        execute(
            """INSERT INTO history (id, thread_id, role, content, timestamp, trace)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (turn.id, turn.thread_id, turn.role, turn.content, turn.timestamp,
             _json_dumps(turn.trace)),
        )
        logger.debug(f"Stored {turn.role} turn {turn.id} in thread {turn.thread_id}")
        return turn

    def upsert_thread(self, summary: ThreadSummary) -> None:
        execute(
            """INSERT OR REPLACE INTO threads (thread_id, title, last_updated)
               VALUES (?, ?, ?)""",
            (summary.thread_id, summary.title, summary.last_updated),
        )

    def get_conversation(self, thread_id: str) -> list[ConversationTurn]:
        """Turns of a thread, oldest first, capped at max_history_length."""
        rows = execute(
            """SELECT * FROM (
                   SELECT rowid AS seq, * FROM history WHERE thread_id = ?
                   ORDER BY timestamp DESC, seq DESC LIMIT ?
               ) ORDER BY timestamp ASC, seq ASC""",
            (thread_id, self.max_history_length),
            fetch="all",
        )
        return [_row_to_turn(row) for row in rows]

    def get_thread(self, thread_id: str) -> Optional[ThreadSummary]:
        row = execute(
            "SELECT thread_id, title, last_updated FROM threads WHERE thread_id = ?",
            (thread_id,),
            fetch="one",
        )
        if row is None:
            return None
        return ThreadSummary(**row)

    def list_threads(self) -> list[ThreadSummary]:
        """All thread summaries, most recently updated first."""
        rows = execute(
            "SELECT thread_id, title, last_updated FROM threads ORDER BY last_updated DESC",
            fetch="all",
        )
        return [ThreadSummary(**row) for row in rows]
