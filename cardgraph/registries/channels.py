"""Channel store -- destroying or rekeying a channel reaches its messages."""

from __future__ import annotations

import logging

from ..messaging.channel import Channel
from .base import EntityRegistry

logger = logging.getLogger(__name__)


class ChannelStore(EntityRegistry[Channel]):
    kind = "channels"

    def _create_placeholder(self, entity_id: str) -> Channel:
        return Channel(self._client, id=entity_id)

    def _cascade_remove(self, entity: Channel) -> None:
        # Full scan; the message store is memory-resident and session-bounded.
        doomed = [m for m in self._client.messages if m.parent_id == entity.id]
        for message in doomed:
            message.destroy()
        if doomed:
            logger.debug("Destroyed %d message(s) of channel %s", len(doomed), entity.id)

    def _cascade_rekey(self, entity: Channel, old_id: str) -> None:
        for message in self._client.messages:
            if message.parent_id == old_id:
                message.parent_id = entity.id
