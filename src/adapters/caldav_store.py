"""CalDAV remote store adapters - implement RemoteStorePort for CalDAV servers.

Events and alarms are both stored as VEVENTs in one calendar; alarms carry
X-TIMEGEIST-KIND:ALARM and an RRULE mirroring their recurrence rule.
Uses the caldav library (sync) wrapped with asyncio.to_thread for async
compatibility.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import replace
from datetime import date, datetime, time, timezone

import caldav
from icalendar import Calendar as iCalendar
from icalendar import Event as iEvent

from src.config import settings
from src.data.models import Alarm, Event, RecurringType
from src.ports.remote_store_port import RemoteStoreError

logger = logging.getLogger(__name__)

_KIND = "X-TIMEGEIST-KIND"
_ICAL_DAYS = ["SU", "MO", "TU", "WE", "TH", "FR", "SA"]


def _get_calendar() -> caldav.Calendar:
    """Connect to CalDAV server and return the configured calendar."""
    client = caldav.DAVClient(
        url=settings.CALDAV_URL,
        username=settings.CALDAV_USERNAME,
        password=settings.CALDAV_PASSWORD,
    )
    principal = client.principal()
    calendars = principal.calendars()

    if not calendars:
        raise RemoteStoreError("No calendars found on the CalDAV server.")

    if settings.CALDAV_CALENDAR_NAME:
        for cal in calendars:
            if cal.name == settings.CALDAV_CALENDAR_NAME:
                return cal
        raise RemoteStoreError(
            f"Calendar '{settings.CALDAV_CALENDAR_NAME}' not found. "
            f"Available: {[c.name for c in calendars]}"
        )

    return calendars[0]


def _wrap(component: iEvent) -> str:
    cal = iCalendar()
    cal.add("prodid", "-//Timegeist//EN")
    cal.add("version", "2.0")
    cal.add_component(component)
    return cal.to_ical().decode("utf-8")


def _text(component: iEvent, name: str) -> str | None:
    value = component.get(name)
    return str(value) if value is not None else None


def _flag(component: iEvent, name: str) -> bool:
    return (_text(component, name) or "").upper() == "TRUE"


def _find_vevent(data: str) -> iEvent | None:
    cal = iCalendar.from_ical(data)
    for component in cal.walk():
        if component.name == "VEVENT":
            return component
    return None


# ---------------------------------------------------------------------------
# Event <-> VEVENT
# ---------------------------------------------------------------------------


def _build_event_vevent(event: Event) -> str:
    """Build an iCalendar VEVENT string for a calendar event."""
    component = iEvent()
    component.add("uid", event.id)
    component.add("summary", event.title)
    if event.description:
        component.add("description", event.description)

    if event.time_start:
        component.add("dtstart", datetime.combine(event.date, time.fromisoformat(event.time_start)))
        if event.time_end:
            component.add("dtend", datetime.combine(event.date, time.fromisoformat(event.time_end)))
    else:
        component.add("dtstart", event.date)

    component.add(_KIND, "EVENT")
    component.add("X-TIMEGEIST-LOCKED", "TRUE" if event.is_locked else "FALSE")
    component.add("X-TIMEGEIST-CREATED-BY", event.created_by)
    if event.color:
        component.add("X-TIMEGEIST-COLOR", event.color)
    if event.created_at:
        component.add("X-TIMEGEIST-CREATED", event.created_at)
    if event.updated_at:
        component.add("X-TIMEGEIST-UPDATED", event.updated_at)
    return _wrap(component)


def _parse_event_vevent(component: iEvent) -> Event:
    start = component.get("dtstart").dt
    end = component.get("dtend")
    end_dt = end.dt if end is not None else None

    if isinstance(start, datetime):
        event_date = start.date()
        time_start = start.strftime("%H:%M")
    else:
        event_date = start
        time_start = None
    time_end = end_dt.strftime("%H:%M") if isinstance(end_dt, datetime) else None

    return Event(
        id=str(component.get("uid", "")),
        title=str(component.get("summary", "(no title)")),
        date=event_date,
        created_by=_text(component, "X-TIMEGEIST-CREATED-BY") or "",
        description=_text(component, "description"),
        time_start=time_start,
        time_end=time_end,
        color=_text(component, "X-TIMEGEIST-COLOR"),
        is_locked=_flag(component, "X-TIMEGEIST-LOCKED"),
        created_at=_text(component, "X-TIMEGEIST-CREATED") or "",
        updated_at=_text(component, "X-TIMEGEIST-UPDATED") or "",
    )


# ---------------------------------------------------------------------------
# Alarm <-> VEVENT (+RRULE)
# ---------------------------------------------------------------------------


def _build_rrule(alarm: Alarm) -> dict:
    """Translate an alarm's recurrence fields into RRULE parts."""
    rrule: dict = {"FREQ": RecurringType(alarm.recurring_type).value.upper()}
    if alarm.recurring_interval and alarm.recurring_interval != 1:
        rrule["INTERVAL"] = alarm.recurring_interval
    if alarm.recurring_days:
        rrule["BYDAY"] = [_ICAL_DAYS[d] for d in alarm.recurring_days]
    if alarm.recurring_months:
        rrule["BYMONTH"] = list(alarm.recurring_months)
    if alarm.recurring_day_of_month:
        rrule["BYMONTHDAY"] = alarm.recurring_day_of_month
    if alarm.recurring_end_date:
        rrule["UNTIL"] = alarm.recurring_end_date
    return rrule


def _build_alarm_vevent(alarm: Alarm) -> str:
    """Build an iCalendar VEVENT string for an alarm."""
    component = iEvent()
    component.add("uid", alarm.id)
    component.add("summary", alarm.title)
    if alarm.description:
        component.add("description", alarm.description)
    component.add("dtstart", alarm.alarm_time)
    if alarm.is_recurring and alarm.recurring_type:
        component.add("rrule", _build_rrule(alarm))

    component.add(_KIND, "ALARM")
    component.add("X-TIMEGEIST-USER", alarm.user_id)
    component.add("X-TIMEGEIST-SNOOZED", "TRUE" if alarm.is_snoozed else "FALSE")
    if alarm.snooze_until:
        component.add("X-TIMEGEIST-SNOOZE-UNTIL", alarm.snooze_until.isoformat())
    if alarm.event_id:
        component.add("X-TIMEGEIST-EVENT", alarm.event_id)
    if alarm.alarm_type:
        component.add("X-TIMEGEIST-ALARM-TYPE", alarm.alarm_type)
    return _wrap(component)


def _parse_alarm_vevent(component: iEvent) -> Alarm:
    alarm_time = component.get("dtstart").dt
    if not isinstance(alarm_time, datetime):
        alarm_time = datetime.combine(alarm_time, time())

    record: dict = {
        "id": str(component.get("uid", "")),
        "title": str(component.get("summary", "Unnamed Alarm")),
        "alarm_time": alarm_time,
        "user_id": _text(component, "X-TIMEGEIST-USER") or "",
        "description": _text(component, "description"),
        "event_id": _text(component, "X-TIMEGEIST-EVENT"),
        "alarm_type": _text(component, "X-TIMEGEIST-ALARM-TYPE"),
        "is_snoozed": _flag(component, "X-TIMEGEIST-SNOOZED"),
        "snooze_until": _text(component, "X-TIMEGEIST-SNOOZE-UNTIL"),
    }

    rrule = component.get("rrule")
    if rrule:
        record["is_recurring"] = True
        record["recurring_type"] = rrule["FREQ"][0].lower()
        record["recurring_interval"] = rrule.get("INTERVAL", [1])[0]
        record["recurring_days"] = [_ICAL_DAYS.index(str(d)[-2:]) for d in rrule.get("BYDAY", [])]
        record["recurring_months"] = [int(m) for m in rrule.get("BYMONTH", [])]
        by_month_day = rrule.get("BYMONTHDAY")
        record["recurring_day_of_month"] = int(by_month_day[0]) if by_month_day else None
        until = rrule.get("UNTIL")
        record["recurring_end_date"] = until[0] if until else None
    return Alarm.from_record(record)


# ---------------------------------------------------------------------------
# Stores
# ---------------------------------------------------------------------------


class _CalDAVStore(ABC):
    """Shared CalDAV plumbing; subclasses define the VEVENT mapping."""

    kind = ""

    @abstractmethod
    def _build(self, entity) -> str:
        """Serialize ``entity`` to iCalendar text."""

    @abstractmethod
    def _parse(self, component: iEvent):
        """Read an entity back from its VEVENT."""

    @abstractmethod
    def _owner(self, entity) -> str:
        """User id the entity belongs to."""

    async def fetch_all(self, user_id: str | None = None) -> list:
        try:
            cal = await asyncio.to_thread(_get_calendar)
            results = await asyncio.to_thread(cal.events)

            entities = []
            for ev in results:
                component = _find_vevent(ev.data)
                if component is None or _text(component, _KIND) != self.kind.upper():
                    continue
                entity = self._parse(component)
                if user_id is not None and self._owner(entity) != user_id:
                    continue
                entities.append(entity)

            logger.info("Fetched %d CalDAV %s(s) for user %s", len(entities), self.kind, user_id)
            return entities
        except RemoteStoreError:
            raise
        except Exception as exc:
            logger.error("CalDAV error (fetch %ss): %s", self.kind, exc)
            raise RemoteStoreError(f"Failed to fetch {self.kind}s: {exc}") from exc

    async def create(self, entity):
        stored = self._stamp(replace(entity, id=str(uuid.uuid4())), created=True)
        try:
            cal = await asyncio.to_thread(_get_calendar)
            await asyncio.to_thread(cal.save_event, self._build(stored))
            logger.info("CalDAV %s created: %s", self.kind, stored.id)
            return stored
        except RemoteStoreError:
            raise
        except Exception as exc:
            logger.error("CalDAV error (create %s): %s", self.kind, exc)
            raise RemoteStoreError(f"Failed to create {self.kind}: {exc}") from exc

    async def update(self, entity_id: str, patch: dict):
        try:
            cal = await asyncio.to_thread(_get_calendar)
            ev = await asyncio.to_thread(cal.event_by_uid, entity_id)
            component = _find_vevent(ev.data)
            if component is None:
                raise RemoteStoreError(f"{self.kind.capitalize()} {entity_id} has no VEVENT.")

            updated = self._stamp(replace(self._parse(component), **patch), created=False)
            ev.data = self._build(updated)
            await asyncio.to_thread(ev.save)
            logger.info("CalDAV %s %s updated: %s", self.kind, entity_id, sorted(patch))
            return updated
        except RemoteStoreError:
            raise
        except Exception as exc:
            logger.error("CalDAV error (update %s): %s", self.kind, exc)
            raise RemoteStoreError(f"Failed to update {self.kind}: {exc}") from exc

    async def delete(self, entity_id: str) -> None:
        try:
            cal = await asyncio.to_thread(_get_calendar)
            ev = await asyncio.to_thread(cal.event_by_uid, entity_id)
            await asyncio.to_thread(ev.delete)
            logger.info("CalDAV %s %s deleted.", self.kind, entity_id)
        except RemoteStoreError:
            raise
        except Exception as exc:
            logger.error("CalDAV error (delete %s): %s", self.kind, exc)
            raise RemoteStoreError(f"Failed to delete {self.kind}: {exc}") from exc

    def _stamp(self, entity, created: bool):
        return entity


class CalDAVEventStore(_CalDAVStore):
    """CalDAV implementation of RemoteStorePort for events."""

    kind = "event"

    def _build(self, entity: Event) -> str:
        return _build_event_vevent(entity)

    def _parse(self, component: iEvent) -> Event:
        return _parse_event_vevent(component)

    def _owner(self, entity: Event) -> str:
        return entity.created_by

    def _stamp(self, entity: Event, created: bool) -> Event:
        now = datetime.now(timezone.utc).isoformat()
        if created:
            return replace(entity, created_at=now, updated_at=now)
        return replace(entity, updated_at=now)


class CalDAVAlarmStore(_CalDAVStore):
    """CalDAV implementation of RemoteStorePort for alarms."""

    kind = "alarm"

    def _build(self, entity: Alarm) -> str:
        return _build_alarm_vevent(entity)

    def _parse(self, component: iEvent) -> Alarm:
        return _parse_alarm_vevent(component)

    def _owner(self, entity: Alarm) -> str:
        return entity.user_id
