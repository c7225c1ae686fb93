"""
Timegeist - Date grid generation.

Pure functions turning an anchor date and the current instant into the
month, week and hour grids the calendar views render, plus the
"is this today / this hour" predicates used for highlighting.

No I/O: "now" always comes from a ClockPort, evaluated on every call so
highlighting stays correct across a day boundary.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import TYPE_CHECKING

from src.config import settings

if TYPE_CHECKING:
    from src.ports.clock_port import ClockPort

GRID_ROWS = 5
GRID_COLUMNS = 7
HOURS_PER_DAY = 24


@dataclass(frozen=True)
class WeekDay:
    """One column of the week view."""

    date: date
    is_today: bool


def _resolve_clock(clock: ClockPort | None) -> ClockPort:
    if clock is not None:
        return clock
    from src.adapters.clock import SystemClock

    return SystemClock()


def _as_local_date(value: date | datetime, now: datetime) -> date:
    """Calendar day of ``value`` as seen from the timezone of ``now``."""
    if isinstance(value, datetime):
        if value.tzinfo is not None and now.tzinfo is not None:
            value = value.astimezone(now.tzinfo)
        return value.date()
    return value


# ---------------------------------------------------------------------------
# Calendar arithmetic helpers
# ---------------------------------------------------------------------------


def weekday_of(d: date) -> int:
    """Weekday with 0 = Sunday ... 6 = Saturday."""
    return (d.weekday() + 1) % 7


def start_of_week(d: date, week_start: int | None = None) -> date:
    """First day of the week containing ``d``."""
    if week_start is None:
        week_start = settings.WEEK_START
    if isinstance(d, datetime):
        d = d.date()
    return d - timedelta(days=(weekday_of(d) - week_start) % 7)


def start_of_month(d: date) -> date:
    if isinstance(d, datetime):
        d = d.date()
    return d.replace(day=1)


def days_in_month(year: int, month: int) -> int:
    """Number of days in ``month`` (1-12) of ``year``."""
    return calendar.monthrange(year, month)[1]


def normalize_month(month_index: int, year: int) -> tuple[int, int]:
    """Fold a 0-based month index that may overflow into (year, month 1-12)."""
    return year + month_index // 12, month_index % 12 + 1


# ---------------------------------------------------------------------------
# Predicates
# ---------------------------------------------------------------------------


def is_current_day(d: date | datetime, clock: ClockPort | None = None) -> bool:
    """True if ``d`` falls on today's date in the clock's timezone."""
    now = _resolve_clock(clock).now()
    return _as_local_date(d, now) == now.date()


def is_current_hour(instant: datetime, clock: ClockPort | None = None) -> bool:
    """True if ``instant`` is within the current hour of the current day."""
    clock = _resolve_clock(clock)
    now = clock.now()
    if instant.tzinfo is not None and now.tzinfo is not None:
        instant = instant.astimezone(now.tzinfo)
    return instant.hour == now.hour and is_current_day(instant, clock)


# ---------------------------------------------------------------------------
# Grids
# ---------------------------------------------------------------------------


def month_grid(
    month_index: int,
    year: int | None = None,
    week_start: int | None = None,
    clock: ClockPort | None = None,
) -> list[list[date]]:
    """Build the 5x7 month grid for a 0-based month index.

    Leading and trailing cells spill into the neighbouring months so every
    row is a full week. Months that need a sixth row are clipped.
    Out-of-range indices roll into adjacent years (13 -> February next year).
    """
    if year is None:
        year = _resolve_clock(clock).now().year
    if week_start is None:
        week_start = settings.WEEK_START

    year, month = normalize_month(month_index, year)
    first = date(year, month, 1)
    counter = 0 - (weekday_of(first) - week_start) % 7

    grid: list[list[date]] = []
    for _ in range(GRID_ROWS):
        row: list[date] = []
        for _ in range(GRID_COLUMNS):
            counter += 1
            row.append(first + timedelta(days=counter - 1))
        grid.append(row)
    return grid


def week_grid(
    anchor: date | datetime,
    week_start: int | None = None,
    clock: ClockPort | None = None,
) -> list[WeekDay]:
    """Seven days starting at the beginning of ``anchor``'s week."""
    clock = _resolve_clock(clock)
    start = start_of_week(anchor, week_start)
    days = [start + timedelta(days=i) for i in range(GRID_COLUMNS)]
    return [WeekDay(date=d, is_today=is_current_day(d, clock)) for d in days]


def hour_sequence(clock: ClockPort | None = None) -> list[datetime]:
    """The 24 hour marks of today, starting at midnight."""
    now = _resolve_clock(clock).now()
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    return [midnight + timedelta(hours=i) for i in range(HOURS_PER_DAY)]
