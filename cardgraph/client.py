"""Client -- the context object owning one entity graph.

Every registry, the notification queue, the loader and the card model type
table hang off a single ``Client``; nothing is shared between clients.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable
from typing import Any

from .cards.kinds import DEFAULT_MODEL_TYPES
from .cards.model import CardModel, model_id_for_part
from .config.settings import cfg
from .errors import UnsupportedMessageError
from .events.emitter import Change, Emitter, Event
from .events.queue import EventQueue
from .messaging.channel import Channel
from .messaging.message import Message, MessagePart
from .registries.base import EntityRegistry
from .registries.cardmodels import CardModelStore
from .registries.channels import ChannelStore
from .registries.messages import MessageStore
from .services.cache import CacheJanitor
from .services.loader import Loader

logger = logging.getLogger(__name__)


class Client:
    """Owns the channel, message and card model stores for one app.

    Listeners attached with :meth:`on` receive the stores' ``<kind>:add`` /
    ``<kind>:remove`` notifications as well as every namespaced event that
    bubbles up from a registered entity (``channels:change``,
    ``channels:sent``, ``messages:loaded``...).
    """

    def __init__(
        self,
        app_id: str | None = None,
        *,
        loader: Loader | None = None,
        model_types: Iterable[type[CardModel]] = DEFAULT_MODEL_TYPES,
        cache_limits: dict[str, int] | None = None,
    ) -> None:
        self.app_id: str = app_id or cfg.app_id or f"layer:///apps/{uuid.uuid4()}"
        self.events = Emitter(self)
        self.is_destroyed = False
        self.queue = EventQueue()
        self.loader = loader

        self.janitor = CacheJanitor(self, cfg.cache_limits if cache_limits is None else cache_limits)
        self.channels = ChannelStore(self)
        self.messages = MessageStore(self)
        self.cardmodels = CardModelStore(self)

        self._model_types: dict[str, type[CardModel]] = {}
        for model_type in model_types:
            self.register_model_type(model_type)

    def __repr__(self) -> str:
        return f"Client({self.app_id!r})"

    # -- events ------------------------------------------------------------

    def on(self, name: str, handler, owner: Any = None) -> Client:
        self.events.on(name, handler, owner)
        return self

    def off(self, name: str | None = None, handler=None, owner: Any = None) -> Client:
        self.events.off(name, handler, owner)
        return self

    def trigger_async(self, name: str, changes: list[Change] | None = None, **data: Any) -> None:
        self.queue.enqueue(Event(name, self, data, list(changes or [])))

    def flush(self) -> int:
        """Deliver everything queued so far (for callers without a running loop)."""
        return self.queue.drain()

    # -- registries --------------------------------------------------------

    def registry_for(self, kind: str) -> EntityRegistry:
        registries: dict[str, EntityRegistry] = {
            ChannelStore.kind: self.channels,
            MessageStore.kind: self.messages,
            CardModelStore.kind: self.cardmodels,
        }
        try:
            return registries[kind]
        except KeyError:
            raise ValueError(f"Unknown entity kind: {kind}") from None

    def get_channel(self, channel_id: str, can_load: bool = False) -> Channel | None:
        return self.channels.get(channel_id, can_load)

    def get_message(self, message_id: str, can_load: bool = False) -> Message | None:
        return self.messages.get(message_id, can_load)

    def get_card_model(self, model_id: str) -> CardModel | None:
        return self.cardmodels.get(model_id)

    def create_channel(
        self,
        participants: list[str],
        metadata: dict[str, Any] | None = None,
        *,
        name: str = "",
    ) -> Channel:
        return Channel(self, participants=participants, metadata=metadata, name=name)

    # -- card models -------------------------------------------------------

    def register_model_type(self, model_type: type[CardModel]) -> None:
        existing = self._model_types.get(model_type.MIME_TYPE)
        if existing is not None and existing is not model_type:
            logger.info("Replacing card model type for %s: %s -> %s",
                        model_type.MIME_TYPE, existing.__name__, model_type.__name__)
        self._model_types[model_type.MIME_TYPE] = model_type

    def model_type_for(self, part: MessagePart) -> type[CardModel] | None:
        return self._model_types.get(part.mime_base_type)

    def create_card_model(self, message: Message, part: MessagePart | None = None) -> CardModel:
        """Return the model for *part* (default: the root part), creating it once."""
        part = part or message.get_root_part()
        if part is None:
            raise UnsupportedMessageError(f"{message.id} has no root part")
        if part not in message.parts:
            raise UnsupportedMessageError(f"{part!r} does not belong to {message.id}")

        existing = self.cardmodels.get(model_id_for_part(part.id))
        if existing is not None:
            return existing

        model_type = self.model_type_for(part)
        if model_type is None:
            raise UnsupportedMessageError(f"No card model handles {part.mime_base_type} ({message.id})")
        return model_type(self, message=message, part=part)

    def get_model_for_message(self, message: Message) -> CardModel:
        return self.cardmodels.get_for_message(message) or self.create_card_model(message)

    # -- teardown ----------------------------------------------------------

    def destroy(self) -> None:
        if self.is_destroyed:
            return
        self.channels.cleanup()
        self.messages.cleanup()
        self.cardmodels.cleanup()
        self.queue.clear()
        self.events.off()
        self.is_destroyed = True
