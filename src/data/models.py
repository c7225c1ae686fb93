"""
Timegeist - Data Models.

Events and alarms are owned by the remote store; the client only caches
them. Occurrences are derived from recurring alarms and never persisted.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from enum import Enum


class RecurringType(str, Enum):
    """Supported recurrence frequencies."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


def _parse_date(raw: str | date | None) -> date | None:
    if raw is None or raw == "":
        return None
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    return date.fromisoformat(raw[:10])


def _parse_datetime(raw: str | datetime) -> datetime:
    if isinstance(raw, datetime):
        return raw
    return datetime.fromisoformat(raw)


@dataclass
class Event:
    """A calendar event created by the signed-in user."""

    id: str
    title: str
    date: date
    created_by: str
    description: str | None = None
    time_start: str | None = None     # HH:MM
    time_end: str | None = None       # HH:MM
    color: str | None = None
    is_locked: bool = False
    created_at: str = ""
    updated_at: str = ""

    def to_record(self) -> dict:
        record = asdict(self)
        record["date"] = self.date.isoformat()
        return record

    @classmethod
    def from_record(cls, record: dict) -> Event:
        return cls(
            id=str(record["id"]),
            title=record.get("title") or "(no title)",
            date=_parse_date(record["date"]),
            created_by=str(record.get("created_by", "")),
            description=record.get("description"),
            time_start=record.get("time_start"),
            time_end=record.get("time_end"),
            color=record.get("color"),
            is_locked=bool(record.get("is_locked", False)),
            created_at=record.get("created_at") or "",
            updated_at=record.get("updated_at") or "",
        )


@dataclass
class Alarm:
    """An alarm, optionally attached to an event and optionally recurring.

    Recurrence fields are only meaningful when ``is_recurring`` is true.
    Weekdays use 0 = Sunday ... 6 = Saturday; months use 1-12.
    """

    id: str
    title: str
    alarm_time: datetime
    user_id: str
    event_id: str | None = None
    is_snoozed: bool = False
    snooze_until: datetime | None = None
    alarm_type: str | None = None
    description: str | None = None
    is_recurring: bool = False
    recurring_type: RecurringType | None = None
    recurring_interval: int | None = None
    recurring_days: list[int] = field(default_factory=list)
    recurring_months: list[int] = field(default_factory=list)
    recurring_day_of_month: int | None = None
    recurring_end_date: date | None = None

    def to_record(self) -> dict:
        record = asdict(self)
        record["alarm_time"] = self.alarm_time.isoformat()
        record["snooze_until"] = (
            self.snooze_until.isoformat() if self.snooze_until else None
        )
        record["recurring_type"] = (
            self.recurring_type.value if self.recurring_type else None
        )
        record["recurring_end_date"] = (
            self.recurring_end_date.isoformat() if self.recurring_end_date else None
        )
        return record

    @classmethod
    def from_record(cls, record: dict) -> Alarm:
        """Build an Alarm from a store record.

        Raises ValueError on an unknown recurring_type.
        """
        raw_type = record.get("recurring_type")
        snooze_until = record.get("snooze_until")
        return cls(
            id=str(record["id"]),
            title=record.get("title") or "Unnamed Alarm",
            alarm_time=_parse_datetime(record["alarm_time"]),
            user_id=str(record.get("user_id", "")),
            event_id=record.get("event_id"),
            is_snoozed=bool(record.get("is_snoozed", False)),
            snooze_until=_parse_datetime(snooze_until) if snooze_until else None,
            alarm_type=record.get("alarm_type"),
            description=record.get("description"),
            is_recurring=bool(record.get("is_recurring", False)),
            recurring_type=RecurringType(raw_type) if raw_type else None,
            recurring_interval=record.get("recurring_interval"),
            recurring_days=list(record.get("recurring_days") or []),
            recurring_months=list(record.get("recurring_months") or []),
            recurring_day_of_month=record.get("recurring_day_of_month"),
            recurring_end_date=_parse_date(record.get("recurring_end_date")),
        )


@dataclass(frozen=True, order=True)
class Occurrence:
    """One concrete firing of an alarm. Orders by instant, then rule id."""

    instant: datetime
    rule_id: str
