"""SQLite remote store adapters - implement RemoteStorePort.

Wrap the synchronous EventDB / AlarmDB with asyncio.to_thread so the caches
can await them like any other remote collaborator.
"""

from __future__ import annotations

import asyncio
import logging

from src.data.db import AlarmDB, EventDB
from src.data.models import Alarm, Event
from src.ports.remote_store_port import RemoteStoreError

logger = logging.getLogger(__name__)


class SQLiteEventStore:
    """SQLite implementation of RemoteStorePort for events."""

    def __init__(self, db: EventDB | None = None, db_path: str | None = None) -> None:
        self._db = db or EventDB(db_path=db_path)

    async def fetch_all(self, user_id: str | None = None) -> list[Event]:
        try:
            return await asyncio.to_thread(self._db.list_events, user_id)
        except Exception as exc:
            logger.error("SQLite error (fetch events): %s", exc)
            raise RemoteStoreError(f"Failed to fetch events: {exc}") from exc

    async def create(self, entity: Event) -> Event:
        try:
            return await asyncio.to_thread(self._db.add_event, entity)
        except Exception as exc:
            logger.error("SQLite error (create event): %s", exc)
            raise RemoteStoreError(f"Failed to create event: {exc}") from exc

    async def update(self, entity_id: str, patch: dict) -> Event:
        try:
            return await asyncio.to_thread(self._db.update_event, entity_id, patch)
        except Exception as exc:
            logger.error("SQLite error (update event %s): %s", entity_id, exc)
            raise RemoteStoreError(f"Failed to update event: {exc}") from exc

    async def delete(self, entity_id: str) -> None:
        try:
            deleted = await asyncio.to_thread(self._db.delete_event, entity_id)
        except Exception as exc:
            logger.error("SQLite error (delete event %s): %s", entity_id, exc)
            raise RemoteStoreError(f"Failed to delete event: {exc}") from exc
        if not deleted:
            raise RemoteStoreError(f"Event {entity_id} not found.")


class SQLiteAlarmStore:
    """SQLite implementation of RemoteStorePort for alarms."""

    def __init__(self, db: AlarmDB | None = None, db_path: str | None = None) -> None:
        self._db = db or AlarmDB(db_path=db_path)

    async def fetch_all(self, user_id: str | None = None) -> list[Alarm]:
        try:
            return await asyncio.to_thread(self._db.list_alarms, user_id)
        except Exception as exc:
            logger.error("SQLite error (fetch alarms): %s", exc)
            raise RemoteStoreError(f"Failed to fetch alarms: {exc}") from exc

    async def create(self, entity: Alarm) -> Alarm:
        try:
            return await asyncio.to_thread(self._db.add_alarm, entity)
        except Exception as exc:
            logger.error("SQLite error (create alarm): %s", exc)
            raise RemoteStoreError(f"Failed to create alarm: {exc}") from exc

    async def update(self, entity_id: str, patch: dict) -> Alarm:
        try:
            return await asyncio.to_thread(self._db.update_alarm, entity_id, patch)
        except Exception as exc:
            logger.error("SQLite error (update alarm %s): %s", entity_id, exc)
            raise RemoteStoreError(f"Failed to update alarm: {exc}") from exc

    async def delete(self, entity_id: str) -> None:
        try:
            deleted = await asyncio.to_thread(self._db.delete_alarm, entity_id)
        except Exception as exc:
            logger.error("SQLite error (delete alarm %s): %s", entity_id, exc)
            raise RemoteStoreError(f"Failed to delete alarm: {exc}") from exc
        if not deleted:
            raise RemoteStoreError(f"Alarm {entity_id} not found.")
