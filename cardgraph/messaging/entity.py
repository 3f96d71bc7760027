"""Base for registry-managed entities (channels, messages)."""

from __future__ import annotations

import enum
import logging
import uuid
from typing import TYPE_CHECKING, Any, ClassVar, Protocol

from ..events.emitter import Change, Emitter, Event
from ..util.text import uuid_of

if TYPE_CHECKING:
    from ..client import Client

logger = logging.getLogger(__name__)


class SyncState(str, enum.Enum):
    NEW = "new"
    SAVING = "saving"
    SYNCED = "synced"
    LOADING = "loading"


class Registrable(Protocol):
    """What an :class:`~cardgraph.registries.base.EntityRegistry` stores."""

    KIND: ClassVar[str]
    id: str
    client: Client | None
    events: Emitter
    is_destroyed: bool
    is_loading: bool

    def trigger_async(self, name: str, changes: list[Change] | None = None, **data: Any) -> None: ...

    def destroy(self) -> None: ...


class Entity:
    PREFIX: ClassVar[str] = "layer:///"
    KIND: ClassVar[str] = ""

    def __init__(self, client: Client | None, id: str | None = None) -> None:
        self.id: str = id or f"{self.PREFIX}{uuid.uuid4()}"
        self.client = client
        self.is_destroyed = False
        self.is_loading = False
        self.sync_state = SyncState.NEW
        self.events = Emitter(self, parent=self._bubble_target)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.id!r})"

    @property
    def client_id(self) -> str:
        return self.client.app_id if self.client is not None else ""

    @property
    def uuid(self) -> str:
        return uuid_of(self.id)

    # -- events ------------------------------------------------------------

    def _bubble_target(self) -> Emitter | None:
        if self.is_destroyed or self.client is None:
            return None
        return self.client.events

    def on(self, name: str, handler, owner: Any = None) -> Entity:
        self.events.on(name, handler, owner)
        return self

    def off(self, name: str | None = None, handler=None, owner: Any = None) -> Entity:
        self.events.off(name, handler, owner)
        return self

    def trigger(self, name: str, **data: Any) -> None:
        self.events.dispatch(Event(name, self, data))

    def trigger_async(self, name: str, changes: list[Change] | None = None, **data: Any) -> None:
        if self.client is None:
            logger.debug("Unbound %r cannot queue %r", self, name)
            return
        self.client.queue.enqueue(Event(name, self, data, list(changes or [])))

    def _set(self, prop: str, value: Any) -> Change | None:
        old = getattr(self, prop, None)
        if old == value:
            return None
        setattr(self, prop, value)
        return Change(prop, old, value)

    # -- lifecycle ---------------------------------------------------------

    def _populate(self, data: dict[str, Any]) -> None:
        """Copy loader data into a placeholder."""
        raise NotImplementedError

    def _unregister(self) -> None:
        if self.client is not None:
            self.client.registry_for(self.KIND).unregister(self)

    def destroy(self) -> None:
        if self.is_destroyed:
            return
        self.trigger("destroy")
        self._unregister()
        self.events.off()
        self.is_destroyed = True
