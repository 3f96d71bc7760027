"""Message and MessagePart -- the part tree card models are built over."""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import TYPE_CHECKING, Any, ClassVar

from ..events.emitter import Change, Emitter, Event
from ..util.text import uuid_of
from .entity import Entity, SyncState

if TYPE_CHECKING:
    from ..client import Client
    from ..services.loader import Loader

logger = logging.getLogger(__name__)

ROLE = "role"
NODE_ID = "node-id"
PARENT_NODE_ID = "parent-node-id"
ROOT_ROLE = "root"


def parse_mime_type(mime_type: str) -> tuple[str, dict[str, str]]:
    """Split ``type; key=value; ...`` into the base type and its parameters."""
    base, *params = [segment.strip() for segment in mime_type.split(";")]
    attributes: dict[str, str] = {}
    for param in params:
        key, sep, value = param.partition("=")
        if sep and key.strip():
            attributes[key.strip()] = value.strip().strip('"')
    return base, attributes


class MessagePart:
    """Leaf content unit of a message.

    ``mime_attributes`` places the part in the message's node tree:
    ``role``, ``node-id`` (its own position) and ``parent-node-id`` (its
    structural parent).  ``body`` may be ``None`` until fetched.
    """

    PART_SEGMENT: ClassVar[str] = "/parts/"

    def __init__(
        self,
        body: str | None = None,
        mime_type: str = "text/plain",
        mime_attributes: dict[str, str] | None = None,
        *,
        id: str | None = None,
        content_url: str | None = None,
    ) -> None:
        base, attributes = parse_mime_type(mime_type)
        attributes.update(mime_attributes or {})
        self.id: str | None = id
        self.body = body
        self.mime_type = base
        self.mime_attributes: dict[str, str] = attributes
        self.content_url = content_url
        self.message: Message | None = None
        self.is_destroyed = False
        self.events = Emitter(self)
        self._fetch_task: asyncio.Task | None = None

    def __repr__(self) -> str:
        return f"MessagePart({self.id!r}, {self.full_mime_type!r})"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MessagePart:
        return cls(
            body=data.get("body"),
            mime_type=data.get("mime_type", "text/plain"),
            mime_attributes=data.get("mime_attributes"),
            id=data.get("id"),
            content_url=data.get("content_url"),
        )

    # -- attributes --------------------------------------------------------

    @property
    def role(self) -> str | None:
        return self.mime_attributes.get(ROLE)

    @role.setter
    def role(self, value: str) -> None:
        self.mime_attributes[ROLE] = value

    @property
    def node_id(self) -> str:
        return self.mime_attributes.get(NODE_ID) or (uuid_of(self.id) if self.id else "")

    @property
    def parent_node_id(self) -> str | None:
        return self.mime_attributes.get(PARENT_NODE_ID)

    @parent_node_id.setter
    def parent_node_id(self, value: str) -> None:
        self.mime_attributes[PARENT_NODE_ID] = value

    @property
    def mime_base_type(self) -> str:
        return self.mime_type

    @property
    def full_mime_type(self) -> str:
        params = "".join(f"; {k}={v}" for k, v in self.mime_attributes.items())
        return f"{self.mime_type}{params}"

    @property
    def has_content(self) -> bool:
        return self.body is not None

    @property
    def uuid(self) -> str:
        return uuid_of(self.id) if self.id else ""

    @property
    def client(self) -> Client | None:
        return self.message.client if self.message is not None else None

    # -- content -----------------------------------------------------------

    def update_body(self, body: str | None) -> None:
        if body == self.body:
            return
        change = Change("body", self.body, body)
        self.body = body
        self.events.dispatch(Event("messageparts:change", self, changes=[change]))

    def fetch_content(self) -> asyncio.Task | None:
        """Schedule a single in-flight fetch of the body through the loader."""
        if self._fetch_task is not None and not self._fetch_task.done():
            return self._fetch_task
        client = self.client
        if client is None or client.loader is None:
            logger.debug("No loader available to fetch content of %s", self.id)
            return None
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running loop; content of %s not fetched", self.id)
            return None
        self._fetch_task = loop.create_task(self._fetch(client.loader))
        return self._fetch_task

    async def _fetch(self, loader: Loader) -> None:
        try:
            body = await loader.fetch_part_content(self)
        except Exception as exc:
            logger.warning("Failed to fetch content of %s: %s", self.id, exc)
            self.events.dispatch(Event("messageparts:fetch-error", self, {"error": exc}))
            return
        if not self.is_destroyed:
            self.update_body(body)

    def destroy(self) -> None:
        if self.is_destroyed:
            return
        if self._fetch_task is not None and not self._fetch_task.done():
            self._fetch_task.cancel()
        self.events.off()
        self.is_destroyed = True


class Message(Entity):
    """An ordered collection of parts belonging to a channel.

    Structural mutations (``messages:part-added``, ``messages:part-removed``,
    ``destroy``) are dispatched synchronously so that card models update
    their child parts before anything else observes the message.
    """

    PREFIX: ClassVar[str] = "layer:///messages/"
    KIND: ClassVar[str] = "messages"

    def __init__(
        self,
        client: Client | None,
        id: str | None = None,
        *,
        parent_id: str = "",
        parts: list[MessagePart] | None = None,
        from_server: bool = False,
    ) -> None:
        super().__init__(client, id)
        self.parent_id = parent_id
        self.parts: list[MessagePart] = []
        for part in parts or []:
            self._attach(part)
            self.parts.append(part)
        if from_server:
            self.sync_state = SyncState.SYNCED
        if client is not None:
            client.messages.register(self)

    @property
    def is_sent(self) -> bool:
        return self.sync_state == SyncState.SYNCED

    def _part_id(self, suffix: str) -> str:
        return f"{self.id}{MessagePart.PART_SEGMENT}{suffix}"

    def _attach(self, part: MessagePart) -> None:
        if part.message is not None and part.message is not self:
            raise ValueError(f"{part!r} already belongs to {part.message!r}")
        part.message = self
        if not part.id:
            part.id = self._part_id(part.mime_attributes.get(NODE_ID) or uuid.uuid4().hex)

    # -- part tree ---------------------------------------------------------

    def add_part(self, part: MessagePart) -> None:
        if part in self.parts:
            return
        self._attach(part)
        self.parts.append(part)
        self.trigger("messages:part-added", part=part)

    def remove_part(self, part: MessagePart) -> None:
        if part not in self.parts:
            return
        self.parts.remove(part)
        self.trigger("messages:part-removed", part=part)

    def get_parts_matching_attribute(self, attributes: dict[str, str]) -> list[MessagePart]:
        return [
            part for part in self.parts
            if all(part.mime_attributes.get(k) == v for k, v in attributes.items())
        ]

    def get_part_with_mime_type(self, mime_type: str) -> MessagePart | None:
        return next((p for p in self.parts if p.mime_base_type == mime_type), None)

    def get_root_part(self) -> MessagePart | None:
        return next((p for p in self.parts if p.role == ROOT_ROLE), None)

    def get_part_by_node_id(self, node_id: str) -> MessagePart | None:
        return next((p for p in self.parts if p.node_id == node_id), None)

    # -- server outcomes ---------------------------------------------------

    def mark_sending(self) -> None:
        self.sync_state = SyncState.SAVING

    def mark_sent(self, server_id: str | None = None) -> Message:
        target = self
        if server_id and server_id != self.id:
            target = self._change_id(server_id)
        target.sync_state = SyncState.SYNCED
        target.trigger_async("messages:sent")
        return target

    def _change_id(self, new_id: str) -> Message:
        old_id = self.id
        self.id = new_id
        for part in self.parts:
            if part.id and part.id.startswith(old_id + MessagePart.PART_SEGMENT):
                part.id = new_id + part.id[len(old_id):]
        if self.client is None:
            return self
        return self.client.messages.rekey(self, old_id) or self

    # -- lifecycle ---------------------------------------------------------

    def _populate(self, data: dict[str, Any]) -> None:
        self.parent_id = data.get("parent_id", self.parent_id)
        for raw in data.get("parts", []):
            part = MessagePart.from_dict(raw)
            self._attach(part)
            self.parts.append(part)
        self.sync_state = SyncState.SYNCED

    def destroy(self) -> None:
        if self.is_destroyed:
            return
        super().destroy()
        for part in self.parts:
            part.destroy()
