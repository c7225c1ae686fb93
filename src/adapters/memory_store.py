"""In-memory remote store adapter - implements RemoteStorePort.

Keeps records in a dict for the lifetime of the process. Used when
REMOTE_STORE=memory and as the default collaborator in tests.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from typing import Generic, TypeVar

from src.ports.remote_store_port import RemoteStoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class MemoryStore(Generic[T]):
    """Dict-backed implementation of RemoteStorePort.

    ``owner_field`` names the attribute matched against ``user_id`` in
    fetch_all ("created_by" for events, "user_id" for alarms).
    """

    def __init__(self, owner_field: str, kind: str = "record") -> None:
        self._owner_field = owner_field
        self._kind = kind
        self._records: dict[str, T] = {}

    async def fetch_all(self, user_id: str | None = None) -> list[T]:
        records = list(self._records.values())
        if user_id is None:
            return records
        return [r for r in records if getattr(r, self._owner_field) == user_id]

    async def create(self, entity: T) -> T:
        stored = replace(entity, id=uuid.uuid4().hex)
        self._records[stored.id] = stored
        logger.info("Memory %s created: %s", self._kind, stored.id)
        return stored

    async def update(self, entity_id: str, patch: dict) -> T:
        current = self._records.get(entity_id)
        if current is None:
            raise RemoteStoreError(f"{self._kind.capitalize()} {entity_id} not found.")
        try:
            updated = replace(current, **patch)
        except TypeError as exc:
            raise RemoteStoreError(f"Invalid {self._kind} patch: {exc}") from exc
        self._records[entity_id] = updated
        return updated

    async def delete(self, entity_id: str) -> None:
        if self._records.pop(entity_id, None) is None:
            raise RemoteStoreError(f"{self._kind.capitalize()} {entity_id} not found.")
