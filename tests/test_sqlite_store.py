"""Tests for the SQLite remote store adapters."""

from datetime import date, datetime
from unittest.mock import MagicMock

import pytest

from src.adapters.sqlite_store import SQLiteAlarmStore, SQLiteEventStore
from src.data.models import Alarm, Event
from src.ports.remote_store_port import RemoteStoreError


def _event(title: str = "Gym") -> Event:
    return Event(id="", title=title, date=date(2024, 1, 10), created_by="u1")


class TestSQLiteEventStore:
    @pytest.mark.asyncio
    async def test_create_and_fetch(self, tmp_db_path):
        store = SQLiteEventStore(db_path=tmp_db_path)
        created = await store.create(_event())

        fetched = await store.fetch_all("u1")
        assert fetched == [created]

    @pytest.mark.asyncio
    async def test_update(self, tmp_db_path):
        store = SQLiteEventStore(db_path=tmp_db_path)
        created = await store.create(_event())
        updated = await store.update(created.id, {"is_locked": True})
        assert updated.is_locked is True

    @pytest.mark.asyncio
    async def test_update_missing_raises_store_error(self, tmp_db_path):
        store = SQLiteEventStore(db_path=tmp_db_path)
        with pytest.raises(RemoteStoreError):
            await store.update("missing", {"title": "x"})

    @pytest.mark.asyncio
    async def test_delete(self, tmp_db_path):
        store = SQLiteEventStore(db_path=tmp_db_path)
        created = await store.create(_event())
        await store.delete(created.id)
        assert await store.fetch_all() == []

    @pytest.mark.asyncio
    async def test_delete_missing_raises_store_error(self, tmp_db_path):
        store = SQLiteEventStore(db_path=tmp_db_path)
        with pytest.raises(RemoteStoreError):
            await store.delete("missing")

    @pytest.mark.asyncio
    async def test_db_failure_wrapped(self):
        db = MagicMock()
        db.list_events.side_effect = Exception("disk I/O error")
        store = SQLiteEventStore(db=db)
        with pytest.raises(RemoteStoreError, match="disk I/O error"):
            await store.fetch_all()


class TestSQLiteAlarmStore:
    @pytest.mark.asyncio
    async def test_create_update_delete(self, tmp_db_path):
        store = SQLiteAlarmStore(db_path=tmp_db_path)
        created = await store.create(Alarm(
            id="", title="Wake", alarm_time=datetime(2024, 1, 1, 7, 0), user_id="u1",
        ))
        updated = await store.update(created.id, {"title": "Wake up"})
        assert updated.title == "Wake up"
        assert [a.title for a in await store.fetch_all("u1")] == ["Wake up"]

        await store.delete(created.id)
        assert await store.fetch_all("u1") == []

    @pytest.mark.asyncio
    async def test_create_failure_wrapped(self):
        db = MagicMock()
        db.add_alarm.side_effect = Exception("locked")
        store = SQLiteAlarmStore(db=db)
        with pytest.raises(RemoteStoreError):
            await store.create(Alarm(
                id="", title="Wake", alarm_time=datetime(2024, 1, 1, 7, 0), user_id="u1",
            ))


@pytest.mark.asyncio
async def test_in_memory_database_through_threads():
    store = SQLiteEventStore(db_path=":memory:")
    created = await store.create(_event())
    assert await store.fetch_all("u1") == [created]
