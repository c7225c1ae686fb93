"""Tests for src.core.date_grid - month/week/hour grids and predicates."""

from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from src.core.date_grid import (
    days_in_month,
    hour_sequence,
    is_current_day,
    is_current_hour,
    month_grid,
    start_of_week,
    week_grid,
    weekday_of,
)


class TestHelpers:
    def test_weekday_of_sunday_is_zero(self):
        assert weekday_of(date(2024, 1, 7)) == 0

    def test_weekday_of_saturday_is_six(self):
        assert weekday_of(date(2024, 1, 6)) == 6

    def test_start_of_week_sunday_start(self):
        assert start_of_week(date(2024, 1, 10), week_start=0) == date(2024, 1, 7)

    def test_start_of_week_monday_start(self):
        assert start_of_week(date(2024, 1, 10), week_start=1) == date(2024, 1, 8)

    def test_start_of_week_on_first_day(self):
        assert start_of_week(date(2024, 1, 7), week_start=0) == date(2024, 1, 7)

    def test_days_in_month_leap_february(self):
        assert days_in_month(2024, 2) == 29
        assert days_in_month(2023, 2) == 28


class TestIsCurrentDay:
    def test_today(self, clock):
        assert is_current_day(date(2024, 1, 10), clock) is True

    def test_yesterday(self, clock):
        assert is_current_day(date(2024, 1, 9), clock) is False

    def test_datetime_in_other_timezone(self, clock):
        """00:30 on the 11th in Tokyo is still the 10th in UTC."""
        tokyo = datetime(2024, 1, 11, 0, 30, tzinfo=ZoneInfo("Asia/Tokyo"))
        assert is_current_day(tokyo, clock) is True

    def test_reevaluated_after_midnight(self, clock):
        assert is_current_day(date(2024, 1, 10), clock) is True
        clock.advance(timedelta(hours=9))
        assert is_current_day(date(2024, 1, 10), clock) is False
        assert is_current_day(date(2024, 1, 11), clock) is True


class TestIsCurrentHour:
    def test_same_day_same_hour(self, clock):
        assert is_current_hour(datetime(2024, 1, 10, 15, 5, tzinfo=timezone.utc), clock) is True

    def test_same_hour_other_day(self, clock):
        assert is_current_hour(datetime(2024, 1, 11, 15, 0, tzinfo=timezone.utc), clock) is False

    def test_same_day_other_hour(self, clock):
        assert is_current_hour(datetime(2024, 1, 10, 14, 59, tzinfo=timezone.utc), clock) is False


class TestMonthGrid:
    @pytest.mark.parametrize("month_index", range(12))
    @pytest.mark.parametrize("year", [2023, 2024, 2025])
    def test_always_five_rows_of_seven(self, month_index, year):
        grid = month_grid(month_index, year)
        assert len(grid) == 5
        assert all(len(row) == 7 for row in grid)

    def test_first_cell_is_start_of_week_of_month(self):
        grid = month_grid(0, 2024)
        assert grid[0][0] == date(2023, 12, 31)
        assert grid[4][6] == date(2024, 2, 3)

    def test_cells_are_consecutive_days(self):
        cells = [d for row in month_grid(4, 2024) for d in row]
        assert all(b - a == timedelta(days=1) for a, b in zip(cells, cells[1:]))

    def test_month_starting_on_week_start_has_no_leading_days(self):
        # September 2024 starts on a Sunday
        assert month_grid(8, 2024)[0][0] == date(2024, 9, 1)

    def test_overflowing_index_rolls_into_next_year(self):
        grid = month_grid(12, 2024)
        assert date(2025, 1, 1) in grid[0]
        assert grid[0][0] == date(2024, 12, 29)

    def test_negative_index_rolls_into_previous_year(self):
        grid = month_grid(-1, 2024)
        assert grid[0][0] == date(2023, 11, 26)
        assert date(2023, 12, 1) in grid[0]

    def test_sixth_row_is_clipped(self):
        """June 2024 starts on Saturday; the 30th would need a sixth row."""
        cells = [d for row in month_grid(5, 2024) for d in row]
        assert cells[-1] == date(2024, 6, 29)
        assert date(2024, 6, 30) not in cells

    def test_monday_week_start(self):
        assert month_grid(0, 2024, week_start=1)[0][0] == date(2024, 1, 1)

    def test_year_defaults_to_clock_year(self, clock):
        assert month_grid(0, clock=clock)[0][0] == date(2023, 12, 31)


class TestWeekGrid:
    def test_seven_days_from_start_of_week(self, clock):
        week = week_grid(date(2024, 1, 10), clock=clock)
        assert [w.date for w in week] == [date(2024, 1, 7) + timedelta(days=i) for i in range(7)]

    def test_anchor_is_in_its_week(self, clock):
        for offset in range(14):
            anchor = date(2024, 3, 1) + timedelta(days=offset)
            assert anchor in [w.date for w in week_grid(anchor, clock=clock)]

    def test_exactly_one_today_in_current_week(self, clock):
        week = week_grid(date(2024, 1, 8), clock=clock)
        today = [w for w in week if w.is_today]
        assert len(today) == 1
        assert today[0].date == date(2024, 1, 10)

    def test_no_today_in_other_week(self, clock):
        week = week_grid(date(2024, 1, 20), clock=clock)
        assert not any(w.is_today for w in week)

    def test_datetime_anchor(self, clock):
        week = week_grid(datetime(2024, 1, 10, 9, 0), clock=clock)
        assert week[0].date == date(2024, 1, 7)


class TestHourSequence:
    def test_twenty_four_hours_from_midnight(self, clock):
        hours = hour_sequence(clock)
        assert len(hours) == 24
        assert hours[0] == datetime(2024, 1, 10, 0, 0, tzinfo=timezone.utc)
        assert [h.hour for h in hours] == list(range(24))

    def test_exactly_one_current_hour(self, clock):
        hours = hour_sequence(clock)
        current = [h for h in hours if is_current_hour(h, clock)]
        assert current == [datetime(2024, 1, 10, 15, 0, tzinfo=timezone.utc)]

    def test_follows_clock_to_next_day(self, clock):
        clock.advance(timedelta(days=1))
        assert hour_sequence(clock)[0].date() == date(2024, 1, 11)
