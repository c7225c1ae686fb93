"""Remote store factory - creates the right adapters based on config."""

from __future__ import annotations

from dataclasses import dataclass

from src.config import settings
from src.ports.remote_store_port import RemoteStorePort


@dataclass
class RemoteStores:
    """The pair of stores backing one session: events and alarms."""

    events: RemoteStorePort
    alarms: RemoteStorePort


def create_remote_stores(db_path: str | None = None) -> RemoteStores:
    """Return the stores matching the REMOTE_STORE setting.

    Args:
        db_path: Override for the SQLite database path.
    """
    provider = settings.REMOTE_STORE.lower()

    if provider == "sqlite":
        from src.adapters.sqlite_store import SQLiteAlarmStore, SQLiteEventStore

        return RemoteStores(
            events=SQLiteEventStore(db_path=db_path),
            alarms=SQLiteAlarmStore(db_path=db_path),
        )

    if provider == "memory":
        from src.adapters.memory_store import MemoryStore

        return RemoteStores(
            events=MemoryStore(owner_field="created_by", kind="event"),
            alarms=MemoryStore(owner_field="user_id", kind="alarm"),
        )

    if provider == "caldav":
        from src.adapters.caldav_store import CalDAVAlarmStore, CalDAVEventStore

        return RemoteStores(events=CalDAVEventStore(), alarms=CalDAVAlarmStore())

    raise ValueError(f"Unknown REMOTE_STORE: {provider!r}")
