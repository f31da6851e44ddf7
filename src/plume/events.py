"""Event emitter notifying listeners after successful mutations."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections import defaultdict
from typing import Any, Callable

__all__ = ["EventEmitter", "EVENTS", "Listener"]

logger = logging.getLogger(__name__)

EVENTS = {
    "create": "created",
    "update": "updated",
    "patch": "patched",
    "remove": "removed",
}

Listener = Callable[[Any], Any]


class EventEmitter:
    """Fan out named events to registered listeners.

    Listeners run in subscription order. A plain callable is invoked
    inline; a coroutine function is scheduled on the running loop and not
    awaited. Listener failures are logged and never reach the emitter's
    caller.
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = defaultdict(list)
        self._pending: set[asyncio.Task] = set()

    def on(self, event: str, listener: Listener) -> None:
        """Subscribe ``listener`` to ``event``."""
        self._listeners[event].append(listener)

    def listeners(self, event: str) -> list[Listener]:
        return list(self._listeners.get(event, ()))

    def emit(self, event: str, payload: Any) -> None:
        """Notify every listener of ``event`` with ``payload``."""
        for listener in self.listeners(event):
            try:
                outcome = listener(payload)
            except Exception:
                logger.exception("Listener %r for %r event failed", listener, event)
                continue
            if inspect.isawaitable(outcome):
                task = asyncio.ensure_future(outcome)
                self._pending.add(task)
                task.add_done_callback(self._make_done_callback(event, listener))

    def _make_done_callback(self, event: str, listener: Listener):
        def done(task: asyncio.Task) -> None:
            self._pending.discard(task)
            if task.cancelled():
                return
            error = task.exception()
            if error is not None:
                logger.error(
                    "Listener %r for %r event failed",
                    listener,
                    event,
                    exc_info=(type(error), error, error.__traceback__),
                )

        return done

    async def drain(self) -> None:
        """Wait for scheduled coroutine listeners to finish."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
