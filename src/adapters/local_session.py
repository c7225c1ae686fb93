"""Local session adapter - implements SessionPort in-process.

Authentication lives outside this project; this adapter only broadcasts
the login/logout transitions that the caches react to.
"""

from __future__ import annotations

import logging
from typing import Callable

from src.ports.session_port import SessionEvent, SessionListener

logger = logging.getLogger(__name__)


class LocalSession:
    """In-process implementation of SessionPort."""

    def __init__(self) -> None:
        self._listeners: list[SessionListener] = []
        self.user_id: str | None = None

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def login(self, user_id: str) -> None:
        self.user_id = user_id
        logger.info("Session started for user %s", user_id)
        await self._emit(SessionEvent(logged_in=True, user_id=user_id))

    async def logout(self) -> None:
        logger.info("Session ended for user %s", self.user_id)
        self.user_id = None
        await self._emit(SessionEvent(logged_in=False))

    async def _emit(self, event: SessionEvent) -> None:
        for listener in list(self._listeners):
            await listener(event)
