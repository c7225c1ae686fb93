"""Clock adapters - implement ClockPort.

SystemClock reads the wall clock in the configured timezone; FixedClock
returns a pinned instant and is used for deterministic runs and tests.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

from src.config import settings


class SystemClock:
    """Wall-clock implementation of ClockPort."""

    def __init__(self, timezone: str | None = None) -> None:
        self._tz = ZoneInfo(timezone or settings.TIMEZONE)

    def now(self) -> datetime:
        return datetime.now(self._tz)


class FixedClock:
    """ClockPort that always returns the same instant until advanced."""

    def __init__(self, instant: datetime) -> None:
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=ZoneInfo(settings.TIMEZONE))
        self._instant = instant

    def now(self) -> datetime:
        return self._instant

    def advance(self, delta: timedelta) -> None:
        self._instant = self._instant + delta
