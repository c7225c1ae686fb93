"""Session port - login/logout signal consumed by the caches."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Awaitable, Callable, Protocol


@dataclass(frozen=True)
class SessionEvent:
    """Emitted on login (logged_in=True, user_id set) and logout."""

    logged_in: bool
    user_id: str | None = None


SessionListener = Callable[[SessionEvent], Awaitable[None]]


class SessionPort(Protocol):
    """Abstract session interface used by core modules."""

    def subscribe(self, listener: SessionListener) -> Callable[[], None]: ...
