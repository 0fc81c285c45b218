"""Process-local listener registry for entity lifecycle notifications."""

from __future__ import annotations

import asyncio
import inspect
import logging
import threading
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class EntityEvent(str, Enum):
    """Lifecycle notifications emitted by repositories."""

    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"


# Listeners receive a list: entities for created/updated, ids for deleted.
# They may be plain functions or coroutine functions.
Listener = Callable[[list[Any]], Any]


class EntityEvents:
    """
    Thread-safe publish/subscribe registry.

    Emission snapshots the listeners registered at that moment and invokes
    them outside the lock. Synchronous listeners run inline; coroutine
    listeners are scheduled as tasks on the running loop. Listener failures
    are logged and never reach the emitter.
    """

    def __init__(self):
        self._listeners: dict[EntityEvent, list[Listener]] = {event: [] for event in EntityEvent}
        self._lock = threading.RLock()
        self._pending: set[asyncio.Task] = set()

    def subscribe(self, event: EntityEvent, listener: Listener) -> Callable[[], bool]:
        """Register a listener. Returns a callable that unregisters it."""
        event = EntityEvent(event)
        with self._lock:
            self._listeners[event].append(listener)
            logger.debug(f"Subscribed listener to {event.value} events")

        return lambda: self.unsubscribe(event, listener)

    def on_created(self, listener: Listener) -> Callable[[], bool]:
        return self.subscribe(EntityEvent.CREATED, listener)

    def on_updated(self, listener: Listener) -> Callable[[], bool]:
        return self.subscribe(EntityEvent.UPDATED, listener)

    def on_deleted(self, listener: Listener) -> Callable[[], bool]:
        """Deletes never read the removed documents, so listeners receive their ids."""
        return self.subscribe(EntityEvent.DELETED, listener)

    def unsubscribe(self, event: EntityEvent, listener: Listener) -> bool:
        """Remove a listener. Returns True if it was registered."""
        with self._lock:
            try:
                self._listeners[EntityEvent(event)].remove(listener)
                return True
            except ValueError:
                return False

    def has_listeners(self, event: EntityEvent) -> bool:
        with self._lock:
            return bool(self._listeners[EntityEvent(event)])

    def listener_count(self, event: EntityEvent | None = None) -> int:
        with self._lock:
            if event is not None:
                return len(self._listeners[EntityEvent(event)])
            return sum(len(listeners) for listeners in self._listeners.values())

    def emit(self, event: EntityEvent, payload: list[Any]) -> None:
        """Notify every listener currently registered for event."""
        event = EntityEvent(event)
        with self._lock:
            listeners = list(self._listeners[event])

        for listener in listeners:
            try:
                result = listener(list(payload))
            except Exception:
                logger.exception(f"Error in {event.value} listener {listener!r}")
                continue

            if inspect.isawaitable(result):
                self._schedule(event, result)

    async def drain(self) -> None:
        """Wait for scheduled coroutine listeners to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def _schedule(self, event: EntityEvent, awaitable: Awaitable[Any]) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(f"No running event loop; dropping async {event.value} listener")
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            return

        task = loop.create_task(self._run_listener(event, awaitable))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    @staticmethod
    async def _run_listener(event: EntityEvent, awaitable: Awaitable[Any]) -> None:
        try:
            await awaitable
        except Exception:
            logger.exception(f"Error in async {event.value} listener")
