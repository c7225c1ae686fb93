"""
Timegeist - Terminal calendar.

Prints the focused month grid and the agenda of the focused week for one
user, then saves the view state so the next run opens on the same date.
"""

from __future__ import annotations

import argparse
import asyncio
import calendar
import logging
import sys
from datetime import date

from src.adapters.clock import SystemClock
from src.adapters.local_session import LocalSession
from src.adapters.store_factory import create_remote_stores
from src.config import settings
from src.core.agenda import DayAgenda, build_agenda
from src.core.date_grid import is_current_day, weekday_of
from src.core.event_cache import AlarmCache, EventCache
from src.core.recurrence import describe_rule
from src.core.view_state import CalendarViewState
from src.data.view_store import ViewStateStore
from src.ports.clock_port import ClockPort

logger = logging.getLogger(__name__)

_WEEKDAY_LABELS = ["Su", "Mo", "Tu", "We", "Th", "Fr", "Sa"]


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def render_month(view: CalendarViewState, clock: ClockPort) -> str:
    """Month grid as text. Today is [bracketed], other months (parenthesized)."""
    grid = view.month_grid()
    month = view.month_index + 1
    year = view.current_year

    labels = [_WEEKDAY_LABELS[(settings.WEEK_START + i) % 7] for i in range(7)]
    lines = [f"{calendar.month_name[month]} {year}".center(28).rstrip()]
    lines.append("".join(f" {label} " for label in labels))
    for row in grid:
        cells = []
        for d in row:
            if is_current_day(d, clock):
                cells.append(f"[{d.day:>2}]")
            elif d.month != month:
                cells.append(f"({d.day:>2})")
            else:
                cells.append(f" {d.day:>2} ")
        lines.append("".join(cells))
    return "\n".join(lines)


def _render_day(entry: DayAgenda, alarms_by_id: dict, today: bool) -> list[str]:
    label = _WEEKDAY_LABELS[weekday_of(entry.day)]
    header = f"{label} {entry.day.isoformat()}" + ("  (today)" if today else "")
    lines = [header]
    for event in entry.events:
        if event.time_start:
            span = event.time_start + (f"-{event.time_end}" if event.time_end else "")
        else:
            span = "all day"
        lock = " [locked]" if event.is_locked else ""
        lines.append(f"  {span:<11} {event.title}{lock}")
    for occ in entry.occurrences:
        alarm = alarms_by_id.get(occ.rule_id)
        title = alarm.title if alarm else occ.rule_id
        rule = describe_rule(alarm) if alarm else None
        suffix = f" ({rule})" if rule else ""
        lines.append(f"  {occ.instant.strftime('%H:%M'):<11} alarm: {title}{suffix}")
    if entry.is_empty:
        lines.append("  -")
    return lines


def render_week(
    view: CalendarViewState,
    events: EventCache,
    alarms: AlarmCache,
    clock: ClockPort,
) -> str:
    """Agenda of the focused week, one block per day."""
    week = view.week_dates()
    tzinfo = clock.now().tzinfo
    agenda = build_agenda(
        [w.date for w in week],
        list(events.events.values()),
        list(alarms.alarms.values()),
        tzinfo=tzinfo,
    )
    lines: list[str] = []
    for w in week:
        lines.extend(_render_day(agenda[w.date], alarms.alarms, w.is_today))
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="timegeist", description="Terminal calendar")
    parser.add_argument("--date", help="Focus this date (YYYY-MM-DD)")
    parser.add_argument("--month", type=int, help="Focus this month (1-12) of the focused year")
    parser.add_argument("--user", default=settings.DEFAULT_USER_ID, help="User to load")
    return parser.parse_args(argv)


async def run(args: argparse.Namespace, clock: ClockPort | None = None) -> int:
    """Load the user's data and print month + week. Returns an exit code."""
    clock = clock or SystemClock()
    view_store = ViewStateStore()
    view = view_store.load(clock)
    if args.date:
        view.set_date(date.fromisoformat(args.date))
    if args.month is not None:
        view.set_month(args.month - 1)

    stores = create_remote_stores()
    session = LocalSession()
    events = EventCache(stores.events)
    alarms = AlarmCache(stores.alarms)
    events.bind_session(session)
    alarms.bind_session(session)

    await session.login(args.user)

    exit_code = 0
    for cache in (events, alarms):
        if cache.last_error is not None:
            print(f"Could not load {cache.kind}s: {cache.last_error}", file=sys.stderr)
            exit_code = 1

    print(render_month(view, clock))
    print()
    print(render_week(view, events, alarms, clock))

    view_store.save(view)
    await session.logout()
    return exit_code


def main(argv: list[str] | None = None) -> None:
    """Entry point: parse arguments and render the calendar."""
    args = _parse_args(argv)
    logger.info("Starting Timegeist for user %s", args.user)
    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
