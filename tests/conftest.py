"""Shared fixtures."""

from pathlib import Path
from typing import Iterator

import pytest

from orchestrapi.persistence import db
from orchestrapi.persistence.conversation_store import ConversationStore
from orchestrapi.tools.registry import ToolRegistry


@pytest.fixture
def store(tmp_path: Path) -> Iterator[ConversationStore]:
    db.configure_db(tmp_path / "conversations.db")
    yield ConversationStore()
    db.configure_db(db.SQLITE_PATH)


@pytest.fixture(scope="session")
def registry() -> ToolRegistry:
    registry = ToolRegistry()
    registry.load()
    return registry
