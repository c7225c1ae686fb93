"""
Timegeist - Calendar view state.

The user's focused date and month plus display preferences, as an owned
object with explicit subscribe/notify. Week and month grids are derived
on demand from the focused date, never cached alongside it.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import TYPE_CHECKING, Callable

from src.config import settings
from src.core.date_grid import WeekDay, month_grid, normalize_month, week_grid

if TYPE_CHECKING:
    from src.ports.clock_port import ClockPort

logger = logging.getLogger(__name__)

THEME_MODES = ("light", "dark", "system")


class CalendarViewState:
    """Focused date, focused month and theme settings for one user."""

    def __init__(
        self,
        clock: ClockPort,
        selected_date: date | None = None,
        month_index: int | None = None,
        theme_mode: str | None = None,
        accent_color: str | None = None,
    ) -> None:
        self._clock = clock
        today = clock.now().date()
        self.selected_date = selected_date or today
        self.month_index = self.selected_date.month - 1 if month_index is None else month_index
        self.theme_mode = theme_mode or settings.THEME_MODE
        self.accent_color = accent_color or settings.ACCENT_COLOR
        self._listeners: list[Callable[[CalendarViewState], None]] = []

    # -- observers -----------------------------------------------------------

    def subscribe(
        self, listener: Callable[[CalendarViewState], None],
    ) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    # -- navigation ----------------------------------------------------------

    def set_date(self, value: date) -> None:
        """Focus ``value``; the focused month follows it."""
        self.selected_date = value
        self.month_index = value.month - 1
        logger.debug("Selected date set to %s", value)
        self._notify()

    def set_month(self, index: int) -> None:
        """Focus a 0-based month of the selected date's year.

        Indices outside 0-11 roll into the neighbouring year.
        """
        year, month = normalize_month(index, self.selected_date.year)
        self.month_index = month - 1
        if year != self.selected_date.year or month != self.selected_date.month:
            self.selected_date = date(year, month, 1)
        logger.debug("Month set to %d/%d", month, year)
        self._notify()

    def next_week(self) -> None:
        self.set_date(self.selected_date + timedelta(days=7))

    def previous_week(self) -> None:
        self.set_date(self.selected_date - timedelta(days=7))

    def next_month(self) -> None:
        self.set_month(self.month_index + 1)

    def previous_month(self) -> None:
        self.set_month(self.month_index - 1)

    def go_today(self) -> None:
        self.set_date(self._clock.now().date())

    # -- preferences ---------------------------------------------------------

    def set_theme_mode(self, mode: str) -> None:
        if mode not in THEME_MODES:
            raise ValueError(f"Unknown theme mode: {mode!r}")
        self.theme_mode = mode
        self._notify()

    def set_accent_color(self, color: str) -> None:
        self.accent_color = color
        self._notify()

    # -- derived -------------------------------------------------------------

    @property
    def current_year(self) -> int:
        return self.selected_date.year

    def week_dates(self) -> list[WeekDay]:
        return week_grid(self.selected_date, clock=self._clock)

    def month_grid(self) -> list[list[date]]:
        return month_grid(self.month_index, self.current_year, clock=self._clock)

    # -- persistence boundary ------------------------------------------------

    def to_dict(self) -> dict:
        return {
            "selected_date": self.selected_date.isoformat(),
            "month_index": self.month_index,
            "theme_mode": self.theme_mode,
            "accent_color": self.accent_color,
        }

    @classmethod
    def from_dict(cls, data: dict, clock: ClockPort) -> CalendarViewState:
        """Rebuild from ``to_dict`` output; missing keys fall back to defaults."""
        raw_date = data.get("selected_date")
        theme_mode = data.get("theme_mode")
        if theme_mode not in THEME_MODES:
            theme_mode = None
        return cls(
            clock=clock,
            selected_date=date.fromisoformat(raw_date) if raw_date else None,
            month_index=data.get("month_index"),
            theme_mode=theme_mode,
            accent_color=data.get("accent_color"),
        )
