"""
Timegeist - View state persistence.

Saves the focused date, month and theme settings to a JSON file so they
survive restarts. Writes go through a temp file and an atomic replace.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING

from src.core.view_state import CalendarViewState

if TYPE_CHECKING:
    from src.ports.clock_port import ClockPort

logger = logging.getLogger(__name__)


class ViewStateStore:
    """JSON-file storage for CalendarViewState."""

    def __init__(self, path: str | None = None) -> None:
        if path is None:
            from src.config import settings
            path = settings.VIEW_STATE_PATH

        self._path = Path(path)

    def load(self, clock: ClockPort) -> CalendarViewState:
        """Read the saved state, or start fresh if missing or unreadable."""
        if not self._path.exists():
            return CalendarViewState(clock=clock)
        try:
            with self._path.open("r", encoding="utf-8") as f:
                data = json.load(f)
            return CalendarViewState.from_dict(data, clock=clock)
        except (OSError, ValueError, TypeError) as exc:
            logger.warning("Ignoring unreadable view state at %s: %s", self._path, exc)
            return CalendarViewState(clock=clock)

    def save(self, state: CalendarViewState) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        with tmp.open("w", encoding="utf-8") as f:
            json.dump(state.to_dict(), f, indent=2, ensure_ascii=False)
        os.replace(tmp, self._path)
        logger.debug("View state saved to %s", self._path)
