"""Shared test fixtures and configuration.

Sets deterministic environment variables before any src imports,
and provides common fixtures like temp DBs and a pinned clock.
"""

import os

# Patch env vars BEFORE any src imports
os.environ["TIMEZONE"] = "UTC"
os.environ["WEEK_START"] = "0"
os.environ["REMOTE_STORE"] = "memory"
os.environ.setdefault("DATABASE_PATH", ":memory:")
os.environ.setdefault("DEFAULT_USER_ID", "u1")

from datetime import datetime, timezone

import pytest


@pytest.fixture
def tmp_db_path(tmp_path):
    """Return a temporary SQLite DB path."""
    return str(tmp_path / "test_calendar.db")


@pytest.fixture
def event_db(tmp_db_path):
    """Return an EventDB instance backed by a temp file."""
    from src.data.db import EventDB
    return EventDB(db_path=tmp_db_path)


@pytest.fixture
def alarm_db(tmp_db_path):
    """Return an AlarmDB instance backed by a temp file."""
    from src.data.db import AlarmDB
    return AlarmDB(db_path=tmp_db_path)


@pytest.fixture
def clock():
    """A clock pinned to Wednesday 2024-01-10 15:30 UTC."""
    from src.adapters.clock import FixedClock
    return FixedClock(datetime(2024, 1, 10, 15, 30, tzinfo=timezone.utc))
