"""SQLite database layer for conversation storage.

Raw SQL via sqlite3. No ORM.

Thread-safety: per-call connections with check_same_thread=False, since
turns are written from orchestration worker threads while the API thread
reads them.
"""

import json
import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Optional, Union

logger = logging.getLogger(__name__)

# SQLite default path
SQLITE_PATH = Path(__file__).resolve().parent.parent / "orchestrapi.db"

_db_path: Path = SQLITE_PATH
_initialized = False


def configure_db(path: Union[str, Path]) -> None:
    """Point the layer at a different database file.

    Resets initialization so the next init_db() creates tables there.
    """
    global _db_path, _initialized
    _db_path = Path(path)
    _initialized = False


def get_db_path() -> Path:
    return _db_path


@contextmanager
def get_connection():
    """Get a SQLite connection.

    Usage:
        with get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(...)
            conn.commit()
    """
    conn = sqlite3.connect(str(_db_path), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    try:
        yield conn
    finally:
        conn.close()


def _json_dumps(data: Any) -> Optional[str]:
    """Serialize data to JSON string for storage."""
    if data is None:
        return None
    return json.dumps(data, ensure_ascii=False, default=str)


def _json_loads(text: Optional[str]) -> Any:
    """Deserialize JSON string from storage."""
    if not text:
        return None
    return json.loads(text)


def execute(sql: str, params: tuple = (), fetch: str = "none") -> Any:
    """Execute a SQL statement.

    Args:
        sql: SQL statement with ? placeholders
        params: Parameters tuple
        fetch: "none", "one", "all"

    Returns:
        None for "none", dict for "one", list[dict] for "all"
    """
    with get_connection() as conn:
        cursor = conn.cursor()
        cursor.execute(sql, params)

        if fetch == "one":
            row = cursor.fetchone()
            return dict(row) if row is not None else None
        if fetch == "all":
            return [dict(row) for row in cursor.fetchall()]

        conn.commit()
        return None


def init_db():
    """Create tables if they don't exist."""
    global _initialized
    if _initialized:
        return

    _db_path.parent.mkdir(parents=True, exist_ok=True)
    ddl = """
    CREATE TABLE IF NOT EXISTS history (
        id TEXT PRIMARY KEY,
        thread_id TEXT NOT NULL,
        role TEXT NOT NULL,
        content TEXT NOT NULL,
        timestamp INTEGER NOT NULL,
        trace TEXT
    );

    CREATE INDEX IF NOT EXISTS idx_history_thread
        ON history(thread_id, timestamp);

    CREATE TABLE IF NOT EXISTS threads (
        thread_id TEXT PRIMARY KEY,
        title TEXT NOT NULL DEFAULT '',
        last_updated INTEGER NOT NULL
    );
    """
    with get_connection() as conn:
        cursor = conn.cursor()
        cursor.executescript(ddl)
        conn.commit()

    _initialized = True
    logger.info(f"Conversation database initialized: SQLite ({_db_path})")
