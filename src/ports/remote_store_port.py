"""Remote store port - abstract interface for event/alarm persistence.

The optimistic caches depend on this protocol, never on a specific store.
One store instance serves one entity type (events or alarms).
"""

from __future__ import annotations

from typing import Generic, Protocol, TypeVar

T = TypeVar("T")


class RemoteStoreError(Exception):
    """Raised when any remote store operation fails."""


class RemoteStorePort(Protocol, Generic[T]):
    """Abstract persistence interface used by the caches."""

    async def fetch_all(self, user_id: str | None = None) -> list[T]: ...

    async def create(self, entity: T) -> T: ...

    async def update(self, entity_id: str, patch: dict) -> T: ...

    async def delete(self, entity_id: str) -> None: ...
