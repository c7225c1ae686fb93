"""
Timegeist - Agenda overlay.

Lays cached events and expanded alarm occurrences onto the days of a grid,
the way the day/week/month views show them.

No I/O: this module only transforms data.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta

from src.core.recurrence import expand_all
from src.data.models import Alarm, Event, Occurrence

logger = logging.getLogger(__name__)


@dataclass
class DayAgenda:
    """Everything shown in one day cell."""

    day: date
    events: list[Event] = field(default_factory=list)
    occurrences: list[Occurrence] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.events and not self.occurrences


def _event_sort_key(event: Event) -> tuple[int, str, str]:
    """All-day events first, then by start time, then title."""
    if event.time_start is None:
        return (0, "", event.title)
    return (1, event.time_start, event.title)


def events_on(day: date, events: list[Event]) -> list[Event]:
    """Events scheduled on ``day``, all-day first, then by start time."""
    return sorted((e for e in events if e.date == day), key=_event_sort_key)


def build_agenda(
    days: list[date],
    events: list[Event],
    alarms: list[Alarm],
    tzinfo=None,
) -> dict[date, DayAgenda]:
    """Group events and alarm occurrences by day for the given days.

    Args:
        days: The visible days (any order; need not be contiguous).
        events: Cached events.
        alarms: Cached alarms; recurring ones are expanded over the span
                from the first to the last visible day.
        tzinfo: Timezone the days are interpreted in (None = naive).
    """
    agenda = {d: DayAgenda(day=d) for d in days}
    if not days:
        return agenda

    for event in events:
        if event.date in agenda:
            agenda[event.date].events.append(event)
    for entry in agenda.values():
        entry.events.sort(key=_event_sort_key)

    start = datetime.combine(min(days), time(), tzinfo)
    end = datetime.combine(max(days) + timedelta(days=1), time(), tzinfo)
    for occ in expand_all(alarms, start, end):
        instant = occ.instant
        if tzinfo is not None and instant.tzinfo is not None:
            instant = instant.astimezone(tzinfo)
        day = instant.date()
        if day in agenda:
            agenda[day].occurrences.append(occ)

    logger.debug(
        "Agenda built for %d day(s): %d event(s), %d alarm(s)",
        len(days), len(events), len(alarms),
    )
    return agenda
