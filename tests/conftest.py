"""Shared fixtures: fixed clock, record factory, in-memory store and engine."""

from datetime import datetime, timedelta, timezone

import pytest

from memory_engine.memory.engine import MemoryEngine
from memory_engine.memory.schemas import MemoryRecord
from memory_engine.memory.store import InMemoryMemoryStore


NOW = datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def clock():
    """Clock frozen at NOW."""
    return lambda: NOW


@pytest.fixture
def make_record():
    """Factory for records created a given number of days before NOW."""
    counter = {"n": 0}

    def _make(content: str, days_ago: float = 0, owner_id: str = "user_1", **kwargs) -> MemoryRecord:
        counter["n"] += 1
        kwargs.setdefault("id", f"mem_{counter['n']:04d}")
        return MemoryRecord(
            owner_id=owner_id,
            content=content,
            created_at=NOW - timedelta(days=days_ago),
            **kwargs,
        )

    return _make


@pytest.fixture
def store() -> InMemoryMemoryStore:
    return InMemoryMemoryStore()


@pytest.fixture
def engine(store, clock) -> MemoryEngine:
    return MemoryEngine(store, clock=clock)


@pytest.fixture
def color_memories(make_record):
    """Two conflicting statements about the same fact."""
    older = make_record("User's favorite color is blue", days_ago=2, category="Preferences")
    newer = make_record("User's favorite color is green", days_ago=0, category="Preferences")
    return older, newer
