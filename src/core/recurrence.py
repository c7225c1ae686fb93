"""
Timegeist - Recurring alarm expansion.

Turns one alarm's recurrence rule into the concrete occurrences that fall
inside a query window. Every occurrence keeps the time of day of the
alarm's ``alarm_time``.

No I/O: this module only transforms data. Iteration is always bounded by
the window end (and the rule's end date when it has one), and jumps
straight to the first period that can reach the window start.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta

from src.config import settings
from src.core.date_grid import days_in_month, start_of_week, weekday_of
from src.data.models import Alarm, Occurrence, RecurringType

logger = logging.getLogger(__name__)

_WEEKDAY_NAMES = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]
_MONTH_NAMES = [
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
]


class ValidationError(ValueError):
    """Raised when an alarm carries a malformed recurrence rule."""


def validate_rule(alarm: Alarm) -> None:
    """Reject malformed recurrence rules. Non-recurring alarms always pass.

    Raises ValidationError describing the first problem found.
    """
    if not alarm.is_recurring:
        return

    if alarm.recurring_type is None:
        raise ValidationError("Recurring alarm has no recurring_type")
    try:
        RecurringType(alarm.recurring_type)
    except ValueError as exc:
        raise ValidationError(
            f"Unknown recurring_type: {alarm.recurring_type!r}"
        ) from exc

    if alarm.recurring_interval is not None and alarm.recurring_interval <= 0:
        raise ValidationError(
            f"recurring_interval must be positive, got {alarm.recurring_interval}"
        )

    bad_days = [d for d in alarm.recurring_days if not 0 <= d <= 6]
    if bad_days:
        raise ValidationError(f"recurring_days out of range 0-6: {bad_days}")

    bad_months = [m for m in alarm.recurring_months if not 1 <= m <= 12]
    if bad_months:
        raise ValidationError(f"recurring_months out of range 1-12: {bad_months}")

    dom = alarm.recurring_day_of_month
    if dom is not None and not 1 <= dom <= 31:
        raise ValidationError(f"recurring_day_of_month out of range 1-31: {dom}")

    end_date = alarm.recurring_end_date
    if end_date is not None and end_date < alarm.alarm_time.date():
        raise ValidationError(
            f"recurring_end_date {end_date} is before the alarm date "
            f"{alarm.alarm_time.date()}"
        )


def _align(
    alarm_time: datetime, start: datetime, end: datetime,
) -> tuple[datetime, datetime, datetime]:
    """Bring the alarm time and the window into the same timezone."""
    tz = alarm_time.tzinfo
    if tz is None:
        if start.tzinfo is not None:
            alarm_time = alarm_time.replace(tzinfo=start.tzinfo)
        return alarm_time, start, end

    def _to_alarm_tz(dt: datetime) -> datetime:
        if dt.tzinfo is None:
            return dt.replace(tzinfo=tz)
        return dt.astimezone(tz)

    return alarm_time, _to_alarm_tz(start), _to_alarm_tz(end)


def _at(day: date, alarm_time: datetime) -> datetime:
    """``day`` at the alarm's time of day (and timezone)."""
    return alarm_time.replace(year=day.year, month=day.month, day=day.day)


def _month_day(
    year: int, month: int, day: int, skip_short_months: bool,
) -> date | None:
    """Clamp ``day`` to the month length, or None if the month is skipped."""
    last = days_in_month(year, month)
    if day > last:
        if skip_short_months:
            return None
        day = last
    return date(year, month, day)


def _daily_days(alarm: Alarm, interval: int, first_day: date, last_day: date):
    alarm_day = alarm.alarm_time.date()
    k = max(0, (first_day - alarm_day).days // interval)
    day = alarm_day + timedelta(days=k * interval)
    while day <= last_day:
        yield day
        day += timedelta(days=interval)


def _weekly_days(alarm: Alarm, interval: int, first_day: date, last_day: date):
    week_start = settings.WEEK_START
    alarm_day = alarm.alarm_time.date()
    weekdays = alarm.recurring_days or [weekday_of(alarm_day)]
    offsets = sorted({(wd - week_start) % 7 for wd in weekdays})

    period = 7 * interval
    anchor = start_of_week(alarm_day, week_start)
    k = max(0, (first_day - anchor).days // period)
    week = anchor + timedelta(days=k * period)
    while week <= last_day:
        for offset in offsets:
            day = week + timedelta(days=offset)
            if day > last_day:
                break
            yield day
        week += timedelta(days=period)


def _monthly_days(
    alarm: Alarm, interval: int, first_day: date, last_day: date,
    skip_short_months: bool,
):
    alarm_day = alarm.alarm_time.date()
    day_of_month = alarm.recurring_day_of_month or alarm_day.day
    base = alarm_day.year * 12 + alarm_day.month - 1
    target = first_day.year * 12 + first_day.month - 1
    index = base + max(0, (target - base) // interval) * interval
    while True:
        year, month0 = divmod(index, 12)
        if date(year, month0 + 1, 1) > last_day:
            return
        day = _month_day(year, month0 + 1, day_of_month, skip_short_months)
        if day is not None:
            yield day
        index += interval


def _yearly_days(
    alarm: Alarm, interval: int, first_day: date, last_day: date,
    skip_short_months: bool,
):
    alarm_day = alarm.alarm_time.date()
    months = sorted(set(alarm.recurring_months)) or [alarm_day.month]
    day_of_month = alarm.recurring_day_of_month or alarm_day.day
    year = alarm_day.year + max(0, (first_day.year - alarm_day.year) // interval) * interval
    while date(year, 1, 1) <= last_day:
        for month in months:
            day = _month_day(year, month, day_of_month, skip_short_months)
            if day is not None:
                yield day
        year += interval


def expand(
    alarm: Alarm,
    start: datetime,
    end: datetime,
    skip_short_months: bool = False,
    limit: int | None = None,
) -> list[Occurrence]:
    """Expand an alarm into its occurrences within ``[start, end)``.

    Args:
        alarm: The alarm to expand. A non-recurring alarm yields at most
               its own ``alarm_time``.
        start: Inclusive window start.
        end: Exclusive window end.
        skip_short_months: Skip months too short for the requested
               day-of-month instead of clamping to their last day.
        limit: Optional cap on the number of occurrences returned.

    Returns:
        Ascending, de-duplicated occurrences. Empty when the window lies
        before the alarm or after its end date.

    Raises:
        ValidationError: the rule is malformed.
    """
    validate_rule(alarm)
    alarm_time, start, end = _align(alarm.alarm_time, start, end)
    if end <= start:
        return []

    if not alarm.is_recurring:
        if start <= alarm_time < end:
            return [Occurrence(instant=alarm_time, rule_id=alarm.id)]
        return []

    end_date = alarm.recurring_end_date
    last_day = end.date()
    if end_date is not None:
        last_day = min(last_day, end_date)
    first_day = max(start.date(), alarm_time.date())
    if last_day < first_day:
        return []

    interval = alarm.recurring_interval or 1
    rule_type = RecurringType(alarm.recurring_type)
    if rule_type is RecurringType.DAILY:
        days = _daily_days(alarm, interval, first_day, last_day)
    elif rule_type is RecurringType.WEEKLY:
        days = _weekly_days(alarm, interval, first_day, last_day)
    elif rule_type is RecurringType.MONTHLY:
        days = _monthly_days(alarm, interval, first_day, last_day, skip_short_months)
    else:
        days = _yearly_days(alarm, interval, first_day, last_day, skip_short_months)

    instants: set[datetime] = set()
    for day in days:
        if end_date is not None and day > end_date:
            continue
        instant = _at(day, alarm_time)
        if instant >= alarm_time and start <= instant < end:
            instants.add(instant)

    occurrences = [Occurrence(instant=i, rule_id=alarm.id) for i in sorted(instants)]
    if limit is not None:
        occurrences = occurrences[:limit]
    logger.debug(
        "Expanded alarm %s (%s) into %d occurrence(s) for %s..%s",
        alarm.id, rule_type.value, len(occurrences), start, end,
    )
    return occurrences


def _is_snoozed_at(alarm: Alarm, instant: datetime) -> bool:
    if not alarm.is_snoozed:
        return False
    if alarm.snooze_until is None:
        return True
    until = alarm.snooze_until
    if until.tzinfo is None and instant.tzinfo is not None:
        until = until.replace(tzinfo=instant.tzinfo)
    return instant < until


def expand_all(
    alarms: list[Alarm], start: datetime, end: datetime,
) -> list[Occurrence]:
    """Merge the occurrences of many alarms, dropping snoozed firings.

    An alarm snoozed without ``snooze_until`` is silenced entirely. An
    alarm with a malformed rule is logged and skipped.
    """
    merged: list[Occurrence] = []
    for alarm in alarms:
        try:
            occurrences = expand(alarm, start, end)
        except ValidationError as exc:
            logger.warning("Skipping alarm %s with invalid rule: %s", alarm.id, exc)
            continue
        for occ in occurrences:
            if not _is_snoozed_at(alarm, occ.instant):
                merged.append(occ)
    merged.sort()
    return merged


def describe_rule(alarm: Alarm) -> str | None:
    """Human-readable summary of a recurrence rule, e.g. "Weekly on Mon, Wed"."""
    if not alarm.is_recurring:
        return None

    interval = alarm.recurring_interval or 1
    rule_type = alarm.recurring_type
    if rule_type == RecurringType.DAILY:
        pattern = "Daily" if interval == 1 else f"Every {interval} days"
    elif rule_type == RecurringType.WEEKLY:
        pattern = "Weekly" if interval == 1 else f"Every {interval} weeks"
        if alarm.recurring_days:
            days_text = ", ".join(_WEEKDAY_NAMES[d] for d in alarm.recurring_days)
            pattern += f" on {days_text}"
    elif rule_type == RecurringType.MONTHLY:
        pattern = "Monthly" if interval == 1 else f"Every {interval} months"
        if alarm.recurring_day_of_month:
            pattern += f" on day {alarm.recurring_day_of_month}"
    elif rule_type == RecurringType.YEARLY:
        pattern = "Yearly" if interval == 1 else f"Every {interval} years"
        if alarm.recurring_months:
            months_text = ", ".join(_MONTH_NAMES[m - 1] for m in alarm.recurring_months)
            pattern += f" in {months_text}"
    else:
        pattern = "Recurring"

    if alarm.recurring_end_date:
        pattern += f" until {alarm.recurring_end_date.isoformat()}"
    return pattern
