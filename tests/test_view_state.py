"""Tests for CalendarViewState and its JSON persistence."""

import json
from datetime import date, timedelta

import pytest

from src.core.date_grid import month_grid
from src.core.view_state import THEME_MODES, CalendarViewState
from src.data.view_store import ViewStateStore


@pytest.fixture
def view(clock):
    return CalendarViewState(clock=clock)


class TestDefaults:
    def test_focuses_today(self, view):
        assert view.selected_date == date(2024, 1, 10)
        assert view.month_index == 0
        assert view.current_year == 2024

    def test_theme_from_settings(self, view):
        assert view.theme_mode in THEME_MODES
        assert view.accent_color


class TestNavigation:
    def test_set_date_moves_month(self, view):
        view.set_date(date(2024, 5, 20))
        assert view.month_index == 4

    def test_set_month_moves_to_first_of_month(self, view):
        view.set_month(1)
        assert view.month_index == 1
        assert view.selected_date == date(2024, 2, 1)

    def test_set_same_month_keeps_date(self, view):
        view.set_month(0)
        assert view.selected_date == date(2024, 1, 10)

    def test_next_month_rolls_year(self, view):
        view.set_date(date(2024, 12, 15))
        view.next_month()
        assert view.month_index == 0
        assert view.selected_date == date(2025, 1, 1)
        assert view.current_year == 2025

    def test_previous_month_rolls_year(self, view):
        view.previous_month()
        assert view.month_index == 11
        assert view.selected_date == date(2023, 12, 1)

    def test_next_and_previous_week(self, view):
        view.next_week()
        assert view.selected_date == date(2024, 1, 17)
        view.previous_week()
        view.previous_week()
        assert view.selected_date == date(2024, 1, 3)

    def test_week_navigation_crosses_month(self, view):
        view.set_date(date(2024, 1, 29))
        view.next_week()
        assert view.selected_date == date(2024, 2, 5)
        assert view.month_index == 1

    def test_go_today(self, view, clock):
        view.set_date(date(2020, 6, 1))
        clock.advance(timedelta(days=1))
        view.go_today()
        assert view.selected_date == date(2024, 1, 11)


class TestPreferences:
    def test_set_theme_mode(self, view):
        view.set_theme_mode("dark")
        assert view.theme_mode == "dark"

    def test_invalid_theme_mode_rejected(self, view):
        with pytest.raises(ValueError):
            view.set_theme_mode("sepia")

    def test_set_accent_color(self, view):
        view.set_accent_color("#112233")
        assert view.accent_color == "#112233"


class TestObservers:
    def test_listeners_notified_on_change(self, view):
        seen = []
        unsubscribe = view.subscribe(lambda v: seen.append(v.selected_date))
        view.next_week()
        view.set_accent_color("#000000")
        unsubscribe()
        view.next_week()
        assert seen == [date(2024, 1, 17), date(2024, 1, 17)]


class TestDerived:
    def test_week_contains_selected_date(self, view):
        view.set_date(date(2024, 3, 14))
        week = view.week_dates()
        assert date(2024, 3, 14) in [w.date for w in week]

    def test_month_grid_follows_focus(self, view):
        view.set_month(5)
        assert view.month_grid() == month_grid(5, 2024)


class TestSerialization:
    def test_dict_round_trip(self, view, clock):
        view.set_date(date(2024, 7, 4))
        view.set_theme_mode("light")
        restored = CalendarViewState.from_dict(view.to_dict(), clock=clock)
        assert restored.to_dict() == view.to_dict()

    def test_unknown_theme_falls_back(self, clock):
        restored = CalendarViewState.from_dict({"theme_mode": "neon"}, clock=clock)
        assert restored.theme_mode in THEME_MODES
        assert restored.selected_date == date(2024, 1, 10)


class TestViewStateStore:
    def test_missing_file_gives_defaults(self, tmp_path, clock):
        store = ViewStateStore(path=str(tmp_path / "view.json"))
        assert store.load(clock).selected_date == date(2024, 1, 10)

    def test_save_and_load(self, tmp_path, clock):
        path = tmp_path / "nested" / "view.json"
        store = ViewStateStore(path=str(path))
        view = CalendarViewState(clock=clock)
        view.set_date(date(2024, 9, 2))
        store.save(view)

        assert json.loads(path.read_text())["selected_date"] == "2024-09-02"
        assert store.load(clock).selected_date == date(2024, 9, 2)
        assert not path.with_suffix(".json.tmp").exists()

    def test_corrupt_file_gives_defaults(self, tmp_path, clock):
        path = tmp_path / "view.json"
        path.write_text("{not json")
        assert ViewStateStore(path=str(path)).load(clock).month_index == 0

    def test_bad_date_gives_defaults(self, tmp_path, clock):
        path = tmp_path / "view.json"
        path.write_text(json.dumps({"selected_date": "yesterday"}))
        assert ViewStateStore(path=str(path)).load(clock).selected_date == date(2024, 1, 10)
