"""Message store -- destroying a message detaches its card models."""

from __future__ import annotations

from ..messaging.message import Message
from .base import EntityRegistry


class MessageStore(EntityRegistry[Message]):
    kind = "messages"

    def _create_placeholder(self, entity_id: str) -> Message:
        return Message(self._client, id=entity_id)

    def for_channel(self, channel_id: str) -> list[Message]:
        return [m for m in self if m.parent_id == channel_id]

    def _cascade_remove(self, entity: Message) -> None:
        self._client.cardmodels.remove_for_message(entity)

    def _cascade_rekey(self, entity: Message, old_id: str) -> None:
        self._client.cardmodels.rekey_message(entity, old_id)

    def _merge(self, entity: Message, survivor: Message, old_id: str) -> None:
        # Card models are bound to the message object, not its id.
        self._client.cardmodels.remove_for_message(entity)
