"""Cache janitor -- evicts cold entities once a kind exceeds its limit."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..messaging.entity import SyncState

if TYPE_CHECKING:
    from ..client import Client
    from ..messaging.entity import Registrable

logger = logging.getLogger(__name__)


class CacheJanitor:
    """Checks registry sizes at the queue's flush point.

    Eviction goes through ``destroy()`` so every removal still passes the
    owning registry's ``unregister`` and its cascades.  Pinned entities,
    placeholders still loading and anything not yet confirmed by the server
    are kept regardless of the limit.
    """

    def __init__(self, client: Client, limits: dict[str, int] | None = None) -> None:
        self._client = client
        self.limits: dict[str, int] = dict(limits or {})
        self._pinned: set[str] = set()
        self._scheduled: set[str] = set()

    def pin(self, entity: Registrable) -> None:
        self._pinned.add(entity.id)

    def unpin(self, entity: Registrable) -> None:
        self._pinned.discard(entity.id)

    def is_pinned(self, entity: Registrable) -> bool:
        return entity.id in self._pinned

    def schedule_check(self, entity: Registrable) -> None:
        kind = entity.KIND
        if kind not in self.limits or kind in self._scheduled:
            return
        self._scheduled.add(kind)
        self._client.queue.defer(lambda: self.check_and_purge(kind))

    def _is_evictable(self, entity: Registrable) -> bool:
        if entity.is_loading or entity.id in self._pinned:
            return False
        return getattr(entity, "sync_state", SyncState.SYNCED) == SyncState.SYNCED

    def check_and_purge(self, kind: str) -> int:
        self._scheduled.discard(kind)
        limit = self.limits.get(kind)
        registry = self._client.registry_for(kind)
        if not limit or len(registry) <= limit:
            return 0

        excess = len(registry) - limit
        # Registries preserve insertion order, so the oldest come first.
        victims = [e for e in registry if self._is_evictable(e)][:excess]
        for entity in victims:
            entity.destroy()
        logger.debug("Evicted %d of %d excess %s", len(victims), excess, kind)
        return len(victims)
