"""Channel -- top-level conversation container."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, ClassVar

from .entity import Entity, SyncState

if TYPE_CHECKING:
    from ..client import Client
    from .message import Message, MessagePart

logger = logging.getLogger(__name__)


class Channel(Entity):
    """A conversation container owning participants and metadata.

    Registered with its client's channel store on construction.  Messages
    point back at a channel through ``Message.parent_id``.

    Notifications (queued unless noted):

    * ``channels:change``: participants/metadata changed; carries ``changes``
    * ``channels:loaded`` / ``channels:loaded-error``: placeholder load finished
    * ``channels:sent``: the server created (``CREATED``) or matched
      (``FOUND``) this channel; ``result`` holds which
    * ``channels:sent-error``: the server rejected create-or-find; ``error``
      holds the server payload
    * ``channels:delete``: dispatched synchronously right before destruction
    """

    PREFIX: ClassVar[str] = "layer:///channels/"
    KIND: ClassVar[str] = "channels"

    CREATED: ClassVar[str] = "Created"
    FOUND: ClassVar[str] = "Found"

    def __init__(
        self,
        client: Client | None,
        id: str | None = None,
        *,
        participants: list[str] | None = None,
        metadata: dict[str, Any] | None = None,
        name: str = "",
        from_server: bool = False,
    ) -> None:
        super().__init__(client, id)
        self.participants: list[str] = list(participants or [])
        self.metadata: dict[str, Any] = dict(metadata or {})
        self.name = name
        if from_server:
            self.sync_state = SyncState.SYNCED
        if client is not None:
            client.channels.register(self)

    # -- messages ----------------------------------------------------------

    def create_message(self, parts: list[MessagePart] | None = None, id: str | None = None) -> Message:
        from .message import Message

        return Message(self.client, id=id, parent_id=self.id, parts=parts)

    # -- property changes --------------------------------------------------

    def set_metadata(self, **values: Any) -> None:
        merged = {**self.metadata, **values}
        change = self._set("metadata", merged)
        if change:
            self.trigger_async("channels:change", changes=[change])

    def add_participants(self, *identity_ids: str) -> None:
        added = [i for i in identity_ids if i not in self.participants]
        if added:
            change = self._set("participants", self.participants + added)
            self.trigger_async("channels:change", changes=[change])

    def remove_participants(self, *identity_ids: str) -> None:
        remaining = [p for p in self.participants if p not in identity_ids]
        change = self._set("participants", remaining)
        if change:
            self.trigger_async("channels:change", changes=[change])

    # -- server outcomes ---------------------------------------------------

    def mark_sending(self) -> None:
        self.sync_state = SyncState.SAVING

    def mark_sent(self, result: str, server_id: str | None = None) -> Channel:
        """Record the server outcome; return the live channel for the server id."""
        if result not in (self.CREATED, self.FOUND):
            raise ValueError(f"Invalid send result: {result}")
        target = self
        if server_id and server_id != self.id:
            target = self._change_id(server_id)
        target.sync_state = SyncState.SYNCED
        target.trigger_async("channels:sent", result=result)
        return target

    def mark_send_failed(self, error: Any) -> None:
        logger.warning("Channel %s rejected by server: %s", self.id, error)
        self.sync_state = SyncState.NEW
        self.trigger_async("channels:sent-error", error=error)

    def deleted(self) -> None:
        """The channel was deleted on the server (locally or remotely)."""
        if self.is_destroyed:
            return
        self.trigger("channels:delete")
        self.destroy()

    def _change_id(self, new_id: str) -> Channel:
        old_id = self.id
        self.id = new_id
        if self.client is None:
            return self
        return self.client.channels.rekey(self, old_id) or self

    def _populate(self, data: dict[str, Any]) -> None:
        self.participants = list(data.get("participants", []))
        self.metadata = dict(data.get("metadata", {}))
        self.name = data.get("name", "")
        self.sync_state = SyncState.SYNCED
