"""Per-object event emitter with owner-scoped subscriptions and bubbling."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Protocol

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Change:
    property: str
    old_value: Any = None
    new_value: Any = None


@dataclass
class Event:
    """A notification about *target*.

    ``data`` carries event-specific values (``part``, ``channels``,
    ``result``, ``error``...); ``changes`` lists property changes for
    ``change`` notifications.
    """

    name: str
    target: Any
    data: dict[str, Any] = field(default_factory=dict)
    changes: list[Change] = field(default_factory=list)

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def get_changes_for(self, prop: str) -> list[Change]:
        return [c for c in self.changes if c.property == prop]

    def has_property(self, prop: str) -> bool:
        return any(c.property == prop for c in self.changes)


Handler = Callable[[Event], Any]


@dataclass(eq=False)
class _Listener:
    name: str
    handler: Handler
    owner: Any = None
    active: bool = True

    def matches(self, name: str | None, handler: Handler | None, owner: Any) -> bool:
        if name is not None and self.name != name:
            return False
        if handler is not None and self.handler != handler:
            return False
        if owner is not None and self.owner is not owner:
            return False
        return True


class Observable(Protocol):
    """Anything that owns an :class:`Emitter` and can be destroyed."""

    events: Emitter
    is_destroyed: bool


class Emitter:
    """Synchronous listener registry for one object.

    *parent* returns the emitter that namespaced events (``kind:event``)
    bubble to after local delivery, or ``None`` to stop bubbling.
    """

    def __init__(self, target: Any, parent: Callable[[], Emitter | None] | None = None) -> None:
        self._target = target
        self._parent = parent
        self._listeners: list[_Listener] = []

    def on(self, name: str, handler: Handler, owner: Any = None) -> Handler:
        for listener in self._listeners:
            if listener.name == name and listener.handler == handler and listener.owner is owner:
                return handler
        self._listeners.append(_Listener(name, handler, owner))
        return handler

    def off(self, name: str | None = None, handler: Handler | None = None, owner: Any = None) -> int:
        removed = [l for l in self._listeners if l.matches(name, handler, owner)]
        for listener in removed:
            listener.active = False
        self._listeners = [l for l in self._listeners if l.active]
        return len(removed)

    def has_listeners(self, name: str | None = None, owner: Any = None) -> bool:
        return any(l.matches(name, None, owner) for l in self._listeners)

    def dispatch(self, event: Event) -> None:
        for listener in [l for l in self._listeners if l.name == event.name]:
            # A handler earlier in this pass may have unsubscribed it.
            if not listener.active:
                continue
            try:
                listener.handler(event)
            except Exception:
                logger.exception(
                    "Listener for %r on %r failed", event.name, getattr(self._target, "id", self._target)
                )

        if ":" in event.name and self._parent is not None:
            parent = self._parent()
            if parent is not None and parent is not self:
                parent.dispatch(event)
