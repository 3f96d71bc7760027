"""Generic keyed entity registry -- one live instance per id.

Each client owns one registry per entity kind.  Registries never create
entities except as load placeholders, never replace a registered entity,
and route every removal through :meth:`EntityRegistry.unregister` so that
listeners are detached before the id mapping disappears.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterator
from typing import TYPE_CHECKING, ClassVar, Generic, TypeVar

from ..errors import InvalidArgumentError, LoadError

if TYPE_CHECKING:
    from ..client import Client
    from ..messaging.entity import Registrable

logger = logging.getLogger(__name__)

T = TypeVar("T", bound="Registrable")


class EntityRegistry(Generic[T]):
    kind: ClassVar[str] = ""
    loadable: ClassVar[bool] = True

    def __init__(self, client: Client) -> None:
        self._client = client
        self._entities: dict[str, T] = {}
        self._loading: dict[str, asyncio.Task] = {}

    def __len__(self) -> int:
        return len(self._entities)

    def __contains__(self, entity_id: object) -> bool:
        return entity_id in self._entities

    def __iter__(self) -> Iterator[T]:
        return iter(list(self._entities.values()))

    def values(self) -> list[T]:
        return list(self._entities.values())

    def is_loading(self, entity_id: str) -> bool:
        return entity_id in self._loading

    # -- lookup ------------------------------------------------------------

    def get(self, entity_id: str, can_load: bool = False) -> T | None:
        if not isinstance(entity_id, str) or not entity_id:
            raise InvalidArgumentError(f"{self.kind} id must be a non-empty string, got {entity_id!r}")

        entity = self._entities.get(entity_id)
        can_load = can_load and self.loadable
        if entity is not None:
            if can_load and entity_id not in self._loading:
                entity.trigger_async(f"{self.kind}:loaded")
            return entity
        if can_load:
            return self._load(entity_id)
        return None

    def _create_placeholder(self, entity_id: str) -> T:
        raise NotImplementedError

    def _load(self, entity_id: str) -> T:
        entity = self._create_placeholder(entity_id)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._load_failed(entity, LoadError(f"No running event loop to load {self.kind} {entity_id}"))
            return entity
        entity.is_loading = True
        logger.debug("Loading %s %s", self.kind, entity_id)
        self._loading[entity_id] = loop.create_task(self._fetch(entity))
        return entity

    def _load_failed(self, entity: T, error: Exception) -> None:
        logger.warning("Failed to load %s %s: %s", self.kind, entity.id, error)
        entity.is_loading = False
        entity.trigger_async(f"{self.kind}:loaded-error", error=error)
        # The empty placeholder goes once the error has been delivered.
        self._client.queue.defer(entity.destroy)

    async def _fetch(self, entity: T) -> None:
        requested_id = entity.id
        loader = self._client.loader
        try:
            if loader is None:
                raise LoadError(f"No loader configured for {self.kind}")
            data = await loader.load(self.kind, requested_id)
        except Exception as exc:
            self._load_failed(entity, exc)
            return
        finally:
            self._loading.pop(requested_id, None)
            self._loading.pop(entity.id, None)

        if entity.is_destroyed:
            return
        entity._populate(data)
        entity.is_loading = False
        entity.trigger_async(f"{self.kind}:loaded")

    # -- registration ------------------------------------------------------

    def register(self, entity: T) -> bool:
        if entity.id in self._entities:
            if self._entities[entity.id] is not entity:
                logger.debug("Ignoring duplicate %s %s", self.kind, entity.id)
            return False

        self._entities[entity.id] = entity
        # Events bubble up through the client back-reference.
        if entity.client is not self._client:
            entity.client = self._client
        self._client.trigger_async(f"{self.kind}:add", **{self.kind: [entity]})
        self._client.janitor.schedule_check(entity)
        return True

    def unregister(self, entity: T) -> bool:
        # Detach first so a late event cannot reach the client's listeners.
        entity.events.off(owner=self._client)

        removed = self._entities.get(entity.id) is entity
        if removed:
            del self._entities[entity.id]
            self._client.trigger_async(f"{self.kind}:remove", **{self.kind: [entity]})
        if not removed:
            # A duplicate never owned the id, so its dependents are not its own.
            return False
        task = self._loading.pop(entity.id, None)
        if task is not None:
            task.cancel()

        self._cascade_remove(entity)
        return True

    def rekey(self, entity: T, old_id: str) -> T | None:
        """Move *entity* from *old_id* to ``entity.id``; return the live instance.

        When another live entity already holds the new id, that one is kept:
        *entity*'s dependents are handed over through :meth:`_merge` and
        *entity* is destroyed.
        """
        if self._entities.get(old_id) is not entity:
            return None
        del self._entities[old_id]
        task = self._loading.pop(old_id, None)

        existing = self._entities.get(entity.id)
        if existing is not None and not existing.is_destroyed:
            logger.info("%s %s already registered; merging %s into it", self.kind, entity.id, old_id)
            if task is not None:
                task.cancel()
            self._client.trigger_async(f"{self.kind}:remove", **{self.kind: [entity]})
            self._merge(entity, existing, old_id)
            entity.destroy()
            return existing

        self._entities[entity.id] = entity
        if task is not None:
            self._loading[entity.id] = task
        logger.debug("Rekeyed %s %s -> %s", self.kind, old_id, entity.id)
        self._cascade_rekey(entity, old_id)
        return entity

    # -- cascades ----------------------------------------------------------

    def _cascade_remove(self, entity: T) -> None:
        """Destroy dependents of a removed entity."""

    def _cascade_rekey(self, entity: T, old_id: str) -> None:
        """Point dependents' foreign keys at ``entity.id``."""

    def _merge(self, entity: T, survivor: T, old_id: str) -> None:
        """Hand *entity*'s dependents to *survivor*, which holds ``entity.id``."""
        self._cascade_rekey(entity, old_id)

    # -- teardown ----------------------------------------------------------

    def cleanup(self) -> None:
        for entity in self.values():
            if not entity.is_destroyed:
                entity.destroy()
        self.reset()

    def reset(self) -> None:
        for task in self._loading.values():
            task.cancel()
        self._loading.clear()
        self._entities.clear()
