"""Clock port - source of "now" for grid highlighting and recurrence.

Core modules take a ClockPort instead of calling datetime.now() so tests
can pin the current instant.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol


class ClockPort(Protocol):
    """Abstract clock interface used by core modules."""

    def now(self) -> datetime: ...
