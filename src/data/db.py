"""
Timegeist - Event & Alarm Database.

SQLite storage behind the local remote store. Ids are assigned here, never
by the client, and timestamps are stamped on every write.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import uuid
from abc import ABC, abstractmethod
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path

from src.data.models import Alarm, Event

logger = logging.getLogger(__name__)


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class _SQLiteDB(ABC):
    """Connection handling shared by the event and alarm tables.

    A ``:memory:`` database lives only as long as its connection, so that
    path keeps one shared connection open for the lifetime of the object.
    """

    def __init__(self, db_path: str | None = None) -> None:
        if db_path is None:
            from src.config import settings
            db_path = settings.DATABASE_PATH

        self._db_path = db_path
        self._memory_conn: sqlite3.Connection | None = None
        if db_path == ":memory:":
            self._memory_conn = sqlite3.connect(db_path, check_same_thread=False)
            self._memory_conn.row_factory = sqlite3.Row
        else:
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        if self._memory_conn is not None:
            return self._memory_conn
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    @abstractmethod
    def _init_db(self) -> None:
        """Create or migrate this store's table."""


class EventDB(_SQLiteDB):
    """SQLite-backed storage for calendar events."""

    def _init_db(self) -> None:
        """Create the events table if it doesn't exist, and migrate schema."""
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS events (
                    id          TEXT PRIMARY KEY,
                    title       TEXT NOT NULL,
                    description TEXT,
                    date        TEXT NOT NULL,
                    time_start  TEXT,
                    time_end    TEXT,
                    color       TEXT,
                    created_at  TEXT NOT NULL,
                    updated_at  TEXT NOT NULL,
                    created_by  TEXT NOT NULL
                )
            """)
            # Migrate existing DBs: add new columns if missing
            existing_cols = {
                row[1] for row in conn.execute("PRAGMA table_info(events)").fetchall()
            }
            if "is_locked" not in existing_cols:
                conn.execute(
                    "ALTER TABLE events ADD COLUMN is_locked INTEGER NOT NULL DEFAULT 0"
                )
        logger.debug("Events table initialized at %s", self._db_path)

    @staticmethod
    def _row_to_event(row: sqlite3.Row) -> Event:
        return Event.from_record(dict(row))

    def add_event(self, event: Event) -> Event:
        """Insert an event under a freshly assigned id."""
        now = _utc_now()
        stored = replace(event, id=uuid.uuid4().hex, created_at=now, updated_at=now)
        record = stored.to_record()
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO events
                    (id, title, description, date, time_start, time_end,
                     color, is_locked, created_at, updated_at, created_by)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    record["id"], record["title"], record["description"],
                    record["date"], record["time_start"], record["time_end"],
                    record["color"], int(record["is_locked"]),
                    record["created_at"], record["updated_at"], record["created_by"],
                ),
            )
        logger.info("Event added: %s '%s' on %s", stored.id, stored.title, record["date"])
        return stored

    def get_event(self, event_id: str) -> Event | None:
        """Fetch a single event by ID."""
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM events WHERE id = ?", (event_id,)
            ).fetchone()
        if row is None:
            return None
        return self._row_to_event(row)

    def list_events(self, user_id: str | None = None) -> list[Event]:
        """List all events, optionally scoped to their creator."""
        query = "SELECT * FROM events"
        params: list = []
        if user_id is not None:
            query += " WHERE created_by = ?"
            params.append(user_id)
        query += " ORDER BY date, time_start"

        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()

        return [self._row_to_event(r) for r in rows]

    def update_event(self, event_id: str, patch: dict) -> Event:
        """Apply ``patch`` to a stored event. Raises ValueError if missing."""
        current = self.get_event(event_id)
        if current is None:
            raise ValueError(f"Event {event_id} not found")

        patch = {k: v for k, v in patch.items() if k not in ("id", "created_at", "created_by")}
        updated = replace(current, **patch, updated_at=_utc_now())
        record = updated.to_record()
        with self._connect() as conn:
            conn.execute(
                """
                UPDATE events SET
                    title = ?, description = ?, date = ?, time_start = ?,
                    time_end = ?, color = ?, is_locked = ?, updated_at = ?
                WHERE id = ?
                """,
                (
                    record["title"], record["description"], record["date"],
                    record["time_start"], record["time_end"], record["color"],
                    int(record["is_locked"]), record["updated_at"], event_id,
                ),
            )
        logger.info("Event %s updated: %s", event_id, sorted(patch))
        return updated

    def delete_event(self, event_id: str) -> bool:
        """Hard-delete an event. Returns False if it did not exist."""
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM events WHERE id = ?", (event_id,))
        deleted = cursor.rowcount > 0
        if deleted:
            logger.info("Event %s deleted", event_id)
        return deleted


class AlarmDB(_SQLiteDB):
    """SQLite-backed storage for alarms and their recurrence rules."""

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS alarms (
                    id                     TEXT PRIMARY KEY,
                    event_id               TEXT,
                    alarm_time             TEXT    NOT NULL,
                    is_snoozed             INTEGER NOT NULL DEFAULT 0,
                    snooze_until           TEXT,
                    alarm_type             TEXT,
                    title                  TEXT    NOT NULL,
                    description            TEXT,
                    user_id                TEXT    NOT NULL,
                    is_recurring           INTEGER NOT NULL DEFAULT 0,
                    recurring_type         TEXT,
                    recurring_interval     INTEGER,
                    recurring_days         TEXT,
                    recurring_months       TEXT,
                    recurring_day_of_month INTEGER,
                    recurring_end_date     TEXT
                )
            """)
        logger.debug("Alarms table initialized at %s", self._db_path)

    @staticmethod
    def _row_to_alarm(row: sqlite3.Row) -> Alarm:
        record = dict(row)
        record["recurring_days"] = json.loads(record["recurring_days"] or "[]")
        record["recurring_months"] = json.loads(record["recurring_months"] or "[]")
        return Alarm.from_record(record)

    @staticmethod
    def _params(alarm: Alarm) -> tuple:
        record = alarm.to_record()
        return (
            record["event_id"], record["alarm_time"], int(record["is_snoozed"]),
            record["snooze_until"], record["alarm_type"], record["title"],
            record["description"], record["user_id"], int(record["is_recurring"]),
            record["recurring_type"], record["recurring_interval"],
            json.dumps(record["recurring_days"]),
            json.dumps(record["recurring_months"]),
            record["recurring_day_of_month"], record["recurring_end_date"],
        )

    def add_alarm(self, alarm: Alarm) -> Alarm:
        """Insert an alarm under a freshly assigned id."""
        stored = replace(alarm, id=uuid.uuid4().hex)
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO alarms
                    (event_id, alarm_time, is_snoozed, snooze_until, alarm_type,
                     title, description, user_id, is_recurring, recurring_type,
                     recurring_interval, recurring_days, recurring_months,
                     recurring_day_of_month, recurring_end_date, id)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                self._params(stored) + (stored.id,),
            )
        logger.info("Alarm added: %s '%s' at %s", stored.id, stored.title, stored.alarm_time)
        return stored

    def get_alarm(self, alarm_id: str) -> Alarm | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM alarms WHERE id = ?", (alarm_id,)
            ).fetchone()
        if row is None:
            return None
        return self._row_to_alarm(row)

    def list_alarms(self, user_id: str | None = None) -> list[Alarm]:
        """List all alarms, optionally scoped to a user."""
        query = "SELECT * FROM alarms"
        params: list = []
        if user_id is not None:
            query += " WHERE user_id = ?"
            params.append(user_id)
        query += " ORDER BY alarm_time"

        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()

        return [self._row_to_alarm(r) for r in rows]

    def update_alarm(self, alarm_id: str, patch: dict) -> Alarm:
        """Apply ``patch`` to a stored alarm. Raises ValueError if missing."""
        current = self.get_alarm(alarm_id)
        if current is None:
            raise ValueError(f"Alarm {alarm_id} not found")

        patch = {k: v for k, v in patch.items() if k not in ("id", "user_id")}
        updated = replace(current, **patch)
        with self._connect() as conn:
            conn.execute(
                """
                UPDATE alarms SET
                    event_id = ?, alarm_time = ?, is_snoozed = ?, snooze_until = ?,
                    alarm_type = ?, title = ?, description = ?, user_id = ?,
                    is_recurring = ?, recurring_type = ?, recurring_interval = ?,
                    recurring_days = ?, recurring_months = ?,
                    recurring_day_of_month = ?, recurring_end_date = ?
                WHERE id = ?
                """,
                self._params(updated) + (alarm_id,),
            )
        logger.info("Alarm %s updated: %s", alarm_id, sorted(patch))
        return updated

    def delete_alarm(self, alarm_id: str) -> bool:
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM alarms WHERE id = ?", (alarm_id,))
        deleted = cursor.rowcount > 0
        if deleted:
            logger.info("Alarm %s deleted", alarm_id)
        return deleted
