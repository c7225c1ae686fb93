"""
Timegeist - Optimistic event & alarm cache.

Holds the signed-in user's events and alarms in memory. Every mutation is
applied locally first, then sent to the remote store; on failure the
previous value is restored from a snapshot taken before the write.

Each mutation moves through idle -> optimistic-applied -> confirmed |
rolled-back. A session change bumps the generation counter, and any
completion belonging to an older generation is dropped.

Same-id mutations are not serialized: whichever remote call completes
last decides the final cached value.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Generic, TypeVar

from src.core.recurrence import expand_all, validate_rule
from src.data.models import Alarm, Event

if TYPE_CHECKING:
    from datetime import datetime

    from src.data.models import Occurrence
    from src.ports.remote_store_port import RemoteStorePort
    from src.ports.session_port import SessionEvent, SessionPort

logger = logging.getLogger(__name__)

T = TypeVar("T")

TEMP_ID_PREFIX = "temp-"


class StaleGenerationError(Exception):
    """A remote completion arrived after the cache was reset."""


@dataclass
class CacheState(Generic[T]):
    """Point-in-time copy of a cache, handed to observers and callers."""

    entries: dict[str, T] = field(default_factory=dict)
    is_initialized: bool = False
    is_loading: bool = False
    last_error: Exception | None = None
    pending_ids: frozenset[str] = frozenset()


@dataclass
class _Snapshot(Generic[T]):
    """Value of one entry before a mutation touched it."""

    entity_id: str
    previous: T | None
    position: int
    generation: int


class OptimisticCache(Generic[T]):
    """Optimistic client-side mirror of one remote collection."""

    kind = "record"

    def __init__(self, store: RemoteStorePort) -> None:
        self._store = store
        self.entries: dict[str, T] = {}
        self.is_initialized = False
        self.is_loading = False
        self.last_error: Exception | None = None
        self.pending_ids: set[str] = set()

        self._user_id: str | None = None
        self._generation = 0
        self._mutation_seq = 0
        self._snapshots: dict[int, _Snapshot[T]] = {}
        self._listeners: list[Callable[[OptimisticCache[T]], None]] = []

    # -- observation ---------------------------------------------------------

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def state(self) -> CacheState[T]:
        return CacheState(
            entries=dict(self.entries),
            is_initialized=self.is_initialized,
            is_loading=self.is_loading,
            last_error=self.last_error,
            pending_ids=frozenset(self.pending_ids),
        )

    def get(self, entity_id: str) -> T | None:
        return self.entries.get(entity_id)

    def is_pending(self, entity_id: str) -> bool:
        return entity_id in self.pending_ids

    def subscribe(
        self, listener: Callable[[OptimisticCache[T]], None],
    ) -> Callable[[], None]:
        """Register ``listener`` to run after every state change."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.exception("%s cache listener failed", self.kind)

    # -- session -------------------------------------------------------------

    def bind_session(self, session: SessionPort) -> Callable[[], None]:
        """Follow ``session``: load on login, reset on logout."""
        return session.subscribe(self.handle_session)

    async def handle_session(self, event: SessionEvent) -> None:
        if event.logged_in:
            self.reset()
            await self.load(event.user_id)
        else:
            self._user_id = None
            self.reset()

    def reset(self) -> None:
        """Drop all cached state and invalidate in-flight completions."""
        self._generation += 1
        self.entries = {}
        self.pending_ids.clear()
        self._snapshots.clear()
        self.is_initialized = False
        self.is_loading = False
        self.last_error = None
        logger.info("%s cache reset (generation %d)", self.kind, self._generation)
        self._notify()

    def _check_generation(self, generation: int) -> None:
        if generation != self._generation:
            raise StaleGenerationError(
                f"completion from generation {generation}, "
                f"cache is at {self._generation}"
            )

    # -- loading -------------------------------------------------------------

    async def load(self, user_id: str | None = None) -> None:
        """Replace the cache with the remote store's full set.

        On failure the current entries are kept and the error is stored
        in ``last_error``.
        """
        if user_id is not None:
            self._user_id = user_id
        generation = self._generation
        self.is_loading = True
        self._notify()

        try:
            entities = await self._store.fetch_all(self._user_id)
        except Exception as exc:
            outcome: Exception | list[T] = exc
        else:
            outcome = entities

        try:
            self._check_generation(generation)
        except StaleGenerationError as exc:
            logger.debug("Discarding %s load: %s", self.kind, exc)
            return

        self.is_loading = False
        if isinstance(outcome, Exception):
            self.last_error = outcome
            logger.warning("Failed to load %ss: %s", self.kind, outcome)
        else:
            self.entries = {self._id_of(e): e for e in outcome}
            self.is_initialized = True
            self.last_error = None
            logger.info("Loaded %d %s(s) for user %s", len(outcome), self.kind, self._user_id)
        self._notify()

    # -- mutations -----------------------------------------------------------

    async def add(self, entity: T) -> T | None:
        """Show ``entity`` immediately under a temporary id, then create it.

        Returns the stored entity (with its server-assigned id), or None
        if the store rejected it or the cache was reset meanwhile.
        """
        self._before_write(entity)
        temp_id = f"{TEMP_ID_PREFIX}{uuid.uuid4().hex}"
        mutation_id = self._take_snapshot(temp_id, None)
        self.entries[temp_id] = replace(entity, id=temp_id)
        self.pending_ids.add(temp_id)
        self._notify()

        def on_success(created: T, snap: _Snapshot[T]) -> T:
            self.pending_ids.discard(temp_id)
            self.entries = _swap_entry(self.entries, temp_id, self._id_of(created), created)
            logger.info("%s %s created (was %s)", self.kind, self._id_of(created), temp_id)
            return created

        def on_failure(exc: Exception, snap: _Snapshot[T]) -> None:
            self.pending_ids.discard(temp_id)
            self.entries.pop(temp_id, None)
            self._record_failure("create", temp_id, exc)

        return await self._confirm(mutation_id, self._store.create(entity), on_success, on_failure)

    async def update(self, entity_id: str, patch: dict) -> T | None:
        """Apply ``patch`` locally, then remotely; restore the old value on failure.

        Raises KeyError if ``entity_id`` is not cached or still pending.
        """
        current = self._require(entity_id)
        updated = replace(current, **patch)
        self._before_write(updated)
        mutation_id = self._take_snapshot(entity_id, current)
        self.entries[entity_id] = updated
        self._notify()

        def on_success(stored: T, snap: _Snapshot[T]) -> T:
            self.entries[entity_id] = stored
            logger.info("%s %s updated: %s", self.kind, entity_id, sorted(patch))
            return stored

        def on_failure(exc: Exception, snap: _Snapshot[T]) -> None:
            if entity_id in self.entries:
                self.entries[entity_id] = snap.previous
            self._record_failure("update", entity_id, exc)

        return await self._confirm(
            mutation_id, self._store.update(entity_id, patch), on_success, on_failure,
        )

    async def remove(self, entity_id: str) -> bool:
        """Drop the entry locally, then remotely; re-insert it on failure.

        Raises KeyError if ``entity_id`` is not cached or still pending.
        """
        self._require(entity_id)
        mutation_id = self._take_snapshot(entity_id, self.entries[entity_id])
        del self.entries[entity_id]
        self._notify()

        def on_success(_: Any, snap: _Snapshot[T]) -> bool:
            logger.info("%s %s deleted", self.kind, entity_id)
            return True

        def on_failure(exc: Exception, snap: _Snapshot[T]) -> None:
            items = list(self.entries.items())
            items.insert(min(snap.position, len(items)), (entity_id, snap.previous))
            self.entries = dict(items)
            self._record_failure("delete", entity_id, exc)

        result = await self._confirm(
            mutation_id, self._store.delete(entity_id), on_success, on_failure,
        )
        return bool(result)

    # -- internals -----------------------------------------------------------

    def _before_write(self, entity: T) -> None:
        """Hook for synchronous validation before any state changes."""

    def _id_of(self, entity: T) -> str:
        return entity.id

    def _require(self, entity_id: str) -> T:
        """Return the confirmed entry for ``entity_id``.

        Entries still waiting for their server id are not addressable.
        """
        if entity_id in self.pending_ids:
            raise KeyError(f"{self.kind} {entity_id!r} is not confirmed yet")
        try:
            return self.entries[entity_id]
        except KeyError:
            raise KeyError(f"{self.kind} {entity_id!r} is not in the cache") from None

    def _take_snapshot(self, entity_id: str, previous: T | None) -> int:
        self._mutation_seq += 1
        position = list(self.entries).index(entity_id) if entity_id in self.entries else len(self.entries)
        self._snapshots[self._mutation_seq] = _Snapshot(
            entity_id=entity_id,
            previous=previous,
            position=position,
            generation=self._generation,
        )
        return self._mutation_seq

    async def _confirm(
        self,
        mutation_id: int,
        remote: Awaitable[Any],
        on_success: Callable[[Any, _Snapshot[T]], Any],
        on_failure: Callable[[Exception, _Snapshot[T]], None],
    ) -> Any:
        """Await the remote call, then confirm or roll back the mutation."""
        snapshot = self._snapshots[mutation_id]
        try:
            result = await remote
        except Exception as exc:
            failed: Exception | None = exc
        else:
            failed = None

        try:
            self._check_generation(snapshot.generation)
        except StaleGenerationError as exc:
            logger.debug("Discarding %s completion for %s: %s", self.kind, snapshot.entity_id, exc)
            return None
        finally:
            self._snapshots.pop(mutation_id, None)

        if failed is not None:
            on_failure(failed, snapshot)
            outcome = None
        else:
            outcome = on_success(result, snapshot)
        self._notify()
        return outcome

    def _record_failure(self, action: str, entity_id: str, exc: Exception) -> None:
        self.last_error = exc
        logger.warning("Failed to %s %s %s, rolled back: %s", action, self.kind, entity_id, exc)


def _swap_entry(entries: dict[str, T], old_id: str, new_id: str, entity: T) -> dict[str, T]:
    """Replace ``old_id`` by ``new_id`` keeping its position in the mapping."""
    if old_id not in entries:
        return {**entries, new_id: entity}
    return {
        (new_id if key == old_id else key): (entity if key == old_id else value)
        for key, value in entries.items()
    }


class EventCache(OptimisticCache[Event]):
    """Cache of calendar events with lock toggling."""

    kind = "event"

    @property
    def events(self) -> dict[str, Event]:
        return self.entries

    async def toggle_lock(self, event_id: str) -> Event | None:
        """Flip ``is_locked``. Two toggles restore the original value."""
        current = self._require(event_id)
        return await self.update(event_id, {"is_locked": not current.is_locked})


class AlarmCache(OptimisticCache[Alarm]):
    """Cache of alarms; recurrence rules are validated before every write."""

    kind = "alarm"

    @property
    def alarms(self) -> dict[str, Alarm]:
        return self.entries

    def _before_write(self, entity: Alarm) -> None:
        validate_rule(entity)

    async def toggle_snooze(self, alarm_id: str) -> Alarm | None:
        """Silence or re-activate an alarm. Re-activating clears snooze_until."""
        current = self._require(alarm_id)
        patch: dict = {"is_snoozed": not current.is_snoozed}
        if current.is_snoozed:
            patch["snooze_until"] = None
        return await self.update(alarm_id, patch)

    def occurrences(self, start: datetime, end: datetime) -> list[Occurrence]:
        """Occurrences of every cached alarm within ``[start, end)``."""
        return expand_all(list(self.entries.values()), start, end)
