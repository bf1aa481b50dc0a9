"""Shared test configuration."""
import os
from datetime import datetime, timedelta, timezone

import pytest

from memweave.core.config import MemweaveSettings, reset_settings
from memweave.context.models import ContextCategory, ContextItem

NOW = datetime(2026, 10, 16, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch):
    """Isolate every test from MEMWEAVE_ variables and the cached settings."""
    for key in list(os.environ):
        if key.upper().startswith("MEMWEAVE_"):
            monkeypatch.delenv(key, raising=False)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def settings():
    return MemweaveSettings()


@pytest.fixture
def now():
    return NOW


def make_item(
    importance,
    tokens=25,
    age=timedelta(0),
    category=ContextCategory.MEMORY,
    label=None,
    timestamp=...,
):
    """Build an item whose simple-estimator cost is exactly ``tokens``."""
    text = "x" * (tokens * 4)
    if label:
        text = label + text[len(label):]
    if timestamp is ...:
        timestamp = NOW - age
    return ContextItem(
        category=category,
        text=text,
        importance=importance,
        timestamp=timestamp,
    )


@pytest.fixture
def sample_records():
    """One candidate of each kind, all recent."""
    iso = (NOW - timedelta(hours=1)).isoformat()
    return {
        "messages": [
            {"id": "m1", "session_id": "s1", "role": "user", "content": "Book the usual table", "created_at": iso},
        ],
        "memories": [
            {"id": "mem1", "content": "Usual table is at Luigi's", "category": "preference", "importance": 0.9, "created_at": iso},
        ],
        "learnings": [
            {"id": "l1", "category": "correction", "trigger": "booking", "lesson": "Confirm party size", "severity": "warning", "created_at": iso},
        ],
        "entities": [
            {"id": "e1", "entity_type": "place", "name": "Luigi's", "description": "Italian restaurant", "mention_count": 7, "last_seen_at": iso},
        ],
    }
