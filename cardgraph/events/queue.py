"""Deferred, coalescing notification queue.

Notifications produced during one synchronous burst of mutations are held
here and delivered together at the flush point, which is the next turn of
the running asyncio loop (or an explicit :meth:`EventQueue.flush` when no
loop is running).  Repeated ``change`` notifications for the same target
collapse into the first one queued; nothing else is merged or reordered.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from .emitter import Event

logger = logging.getLogger(__name__)


def is_coalesced(name: str) -> bool:
    return name == "change" or name.endswith(":change")


class EventQueue:
    def __init__(self) -> None:
        self._events: list[Event] = []
        self._index: dict[tuple[str, int], Event] = {}
        self._deferred: list[Callable[[], None]] = []
        self._handle: asyncio.Handle | None = None

    @property
    def pending(self) -> int:
        return len(self._events)

    @property
    def is_scheduled(self) -> bool:
        return self._handle is not None

    def enqueue(self, event: Event) -> None:
        if is_coalesced(event.name):
            key = (event.name, id(event.target))
            queued = self._index.get(key)
            if queued is not None:
                queued.changes.extend(event.changes)
                return
            self._index[key] = event
        self._events.append(event)
        self._schedule()

    def defer(self, callback: Callable[[], None]) -> None:
        """Run *callback* at the flush point, after the batch is delivered."""
        self._deferred.append(callback)
        self._schedule()

    def _schedule(self) -> None:
        if self._handle is not None:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop: the owner flushes explicitly.
            return
        self._handle = loop.call_soon(self.flush)

    def flush(self) -> int:
        """Deliver the current batch; return how many events were delivered."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        events, self._events = self._events, []
        self._index = {}
        deferred, self._deferred = self._deferred, []

        delivered = 0
        for event in events:
            target = event.target
            if getattr(target, "is_destroyed", False):
                logger.debug("Dropping %r for destroyed %r", event.name, getattr(target, "id", target))
                continue
            target.events.dispatch(event)
            delivered += 1

        for callback in deferred:
            callback()
        return delivered

    def drain(self, max_cycles: int = 100) -> int:
        """Flush until nothing is pending; return the total delivered."""
        total = 0
        for _ in range(max_cycles):
            if not self._events and not self._deferred:
                break
            total += self.flush()
        else:
            logger.warning("Event queue still busy after %d flush cycles", max_cycles)
        return total

    def clear(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self._events.clear()
        self._index.clear()
        self._deferred.clear()
