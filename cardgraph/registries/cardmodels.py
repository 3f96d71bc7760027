"""Card model store -- at most one root model per backing message."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..cards.model import CardModel
from .base import EntityRegistry

if TYPE_CHECKING:
    from ..messaging.message import Message

logger = logging.getLogger(__name__)


class CardModelStore(EntityRegistry[CardModel]):
    kind = "cardmodels"
    loadable = False

    def __init__(self, client) -> None:
        super().__init__(client)
        self._roots: dict[str, CardModel] = {}

    def register(self, entity: CardModel) -> bool:
        message = entity.message
        if message is not None and entity.is_root:
            current = self._roots.get(message.id)
            if current is not None and current is not entity and not current.is_destroyed:
                logger.warning(
                    "Message %s already has card model %s; ignoring %s",
                    message.id, current.id, entity.id,
                )
                return False
        if not super().register(entity):
            return False
        if message is not None and entity.is_root:
            self._roots[message.id] = entity
        return True

    def unregister(self, entity: CardModel) -> bool:
        removed = super().unregister(entity)
        for message_id, model in list(self._roots.items()):
            if model is entity:
                del self._roots[message_id]
        return removed

    def get_for_message(self, message: Message) -> CardModel | None:
        return self._roots.get(message.id)

    def models_for_message(self, message: Message) -> list[CardModel]:
        return [m for m in self if m.message is message]

    def remove_for_message(self, message: Message) -> None:
        for model in self.models_for_message(message):
            model.destroy()

    def rekey_message(self, message: Message, old_id: str) -> None:
        model = self._roots.pop(old_id, None)
        if model is not None:
            self._roots[message.id] = model

    def reset(self) -> None:
        super().reset()
        self._roots.clear()
