"""CardModel -- a typed view over a root message part and its child parts.

A model is materialized either by hydrating from an existing message and
part (``Client.create_card_model``) or by building fresh content and calling
:meth:`CardModel.generate_message`.  Once bound, the model keeps
``child_parts`` and its parsed fields consistent with the message as parts
are added, removed or rewritten, and reports what changed through a single
coalesced ``change`` notification per batch.

The model never owns its message: destroying the model detaches it, while
destroying the message destroys the model.
"""

from __future__ import annotations

import enum
import json
import logging
import re
import uuid
from typing import TYPE_CHECKING, Any, ClassVar

from pydantic import ValidationError

from ..errors import ParseFailure, UnsupportedMessageError
from ..events.emitter import Change, Emitter, Event
from ..messaging.message import NODE_ID, PARENT_NODE_ID, ROOT_ROLE, Message, MessagePart
from ..util.result import Result
from ..util.text import to_camel, uuid_of
from .payload import RESPONSE_SUMMARY_ROLE, ActionSpec, CardPayload, decode_payload

if TYPE_CHECKING:
    from ..client import Client
    from ..messaging.channel import Channel

logger = logging.getLogger(__name__)

MODEL_PREFIX = "layer:///cardmodels/"

_PART_SCOPE = re.compile(r"^.*messages/[^/]+/parts/")
_MESSAGE_SCOPE = re.compile(r"^.*messages/")

_MISSING = object()


def model_id_for_part(part_id: str) -> str:
    """``layer:///messages/X/parts/Y`` -> ``layer:///cardmodels/Y``."""
    scope = _PART_SCOPE if _PART_SCOPE.match(part_id) else _MESSAGE_SCOPE
    return MODEL_PREFIX + scope.sub("", part_id, count=1)


class ModelState(str, enum.Enum):
    UNBOUND = "unbound"
    BOUND_PENDING = "bound-pending"
    BOUND_CONFIRMED = "bound-confirmed"
    DESTROYED = "destroyed"


class CardModel:
    PREFIX: ClassVar[str] = MODEL_PREFIX
    KIND: ClassVar[str] = "cardmodels"
    MIME_TYPE: ClassVar[str] = "application/vnd.layer.card+json"
    LABEL: ClassVar[str] = "Card"
    DEFAULT_ACTION: ClassVar[str] = ""
    PAYLOAD: ClassVar[type[CardPayload]] = CardPayload
    # Kind-specific fields written into generated message bodies.
    BODY_FIELDS: ClassVar[tuple[str, ...]] = ()

    action: ActionSpec
    purpose: str
    custom_data: dict[str, Any]

    def __init__(
        self,
        client: Client,
        *,
        message: Message | None = None,
        part: MessagePart | None = None,
        id: str | None = None,
        **fields: Any,
    ) -> None:
        unknown = set(fields) - set(self.PAYLOAD.model_fields)
        if unknown:
            raise TypeError(f"{type(self).__name__} got unexpected field(s): {', '.join(sorted(unknown))}")

        self.client = client
        self.id: str = id or f"{self.PREFIX}{uuid.uuid4()}"
        self.events = Emitter(self)
        self.is_destroyed = False
        self.is_loading = False

        self.message = message
        self.part = part
        self.child_parts: list[MessagePart] = []
        self.role: str | None = None
        self.responses: dict[str, Any] | None = None
        self.extra: dict[str, Any] = {}
        self.error: ParseFailure | None = None
        self._child_models: list[tuple[str, CardModel]] = []

        for name, info in self.PAYLOAD.model_fields.items():
            setattr(self, name, info.get_default(call_default_factory=True))
        if fields:
            initial = self.PAYLOAD.model_validate(fields)
            for name in initial.model_fields_set:
                setattr(self, name, getattr(initial, name))

        if message is not None:
            self._setup_message()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.id!r})"

    # -- derived properties ------------------------------------------------

    @property
    def uuid(self) -> str:
        return uuid_of(self.id)

    @property
    def client_id(self) -> str:
        return self.client.app_id if self.client is not None else ""

    @property
    def node_id(self) -> str:
        return self.part.node_id if self.part is not None else ""

    @property
    def parent_node_id(self) -> str | None:
        return self.part.parent_node_id if self.part is not None else None

    @property
    def is_root(self) -> bool:
        return self.part is not None and not self.part.parent_node_id

    @property
    def action_event(self) -> str:
        return self.action.event or self.DEFAULT_ACTION

    @property
    def action_data(self) -> dict[str, Any]:
        return self.action.data

    @property
    def state(self) -> ModelState:
        if self.is_destroyed:
            return ModelState.DESTROYED
        if self.message is None:
            return ModelState.UNBOUND
        return ModelState.BOUND_CONFIRMED if self.message.is_sent else ModelState.BOUND_PENDING

    @classmethod
    def is_supported_message(cls, message: Message) -> bool:
        return message.get_part_with_mime_type(cls.MIME_TYPE) is not None

    # -- events ------------------------------------------------------------

    def on(self, name: str, handler, owner: Any = None) -> CardModel:
        self.events.on(name, handler, owner)
        return self

    def off(self, name: str | None = None, handler=None, owner: Any = None) -> CardModel:
        self.events.off(name, handler, owner)
        return self

    def trigger_async(self, name: str, changes: list[Change] | None = None, **data: Any) -> None:
        if self.client is None:
            return
        self.client.queue.enqueue(Event(name, self, data, list(changes or [])))

    # -- binding -----------------------------------------------------------

    def _watch(self, part: MessagePart) -> None:
        part.events.on("messageparts:change", self._handle_part_changes, owner=self)

    def _unwatch_all(self) -> None:
        if self.part is not None:
            self.part.events.off(owner=self)
        for part in self.child_parts:
            part.events.off(owner=self)
        if self.message is not None:
            self.message.events.off(owner=self)

    def _setup_message(self, do_not_parse: bool = False) -> None:
        message = self.message
        if self.part is not None:
            self.id = model_id_for_part(self.part.id)
            self.role = self.part.role
            self.child_parts = message.get_parts_matching_attribute({PARENT_NODE_ID: self.part.node_id})
            self._watch(self.part)
            for part in self.child_parts:
                self._watch(part)
        else:
            self.child_parts = []

        message.events.on("messages:part-added", self._handle_part_added, owner=self)
        message.events.on("messages:part-removed", self._handle_part_removed, owner=self)
        message.events.on("destroy", self._handle_message_destroyed, owner=self)

        store = self.client.cardmodels
        if not store.register(self) and store.get(self.id) is not self:
            self._unwatch_all()
            self.message = None
            self.child_parts = []
            raise UnsupportedMessageError(f"{message.id} already has card model {self.id}")

        if not do_not_parse and self.part is not None:
            if not self.part.has_content:
                self.part.fetch_content()
            self._reparse()

    # -- parsing -----------------------------------------------------------

    def _reparse(self) -> None:
        if self.part is None or self.is_destroyed:
            return
        decoded = decode_payload(self.part.body, part_id=self.part.id)
        if not decoded:
            self._parse_failed(decoded)
            return
        self._parse_message(decoded.value)

    def _parse_message(self, payload: dict[str, Any]) -> None:
        try:
            parsed = self.PAYLOAD.model_validate(payload)
        except ValidationError as exc:
            self._parse_failed(Result.fail(
                str(exc),
                error=ParseFailure(
                    f"Invalid {self.LABEL} payload ({exc.error_count()} error(s))",
                    part_id=self.part.id if self.part is not None else None,
                ),
            ))
            return

        responses = _MISSING
        summaries = [p for p in self.child_parts if p.role == RESPONSE_SUMMARY_ROLE]
        if len(summaries) == 1:
            decoded = decode_payload(summaries[0].body, part_id=summaries[0].id)
            if not decoded:
                self._parse_failed(decoded)
                return
            responses = dict(decoded.value)
            if "participant_data" in responses:
                responses["participantData"] = responses.pop("participant_data")
        elif summaries:
            logger.warning("Card model %s has %d response summaries; ignoring them", self.id, len(summaries))

        changes: list[Change] = []
        if responses is not _MISSING and responses != self.responses:
            changes.append(Change("responses", self.responses, responses))
            self.responses = responses
            self._process_new_responses()

        for name in parsed.model_fields_set:
            value = getattr(parsed, name)
            old = getattr(self, name)
            if old != value:
                setattr(self, name, value)
                changes.append(Change(name, old, value))

        for key, value in (parsed.model_extra or {}).items():
            prop = to_camel(key)
            old = self.extra.get(prop, _MISSING)
            if old != value:
                self.extra[prop] = value
                changes.append(Change(prop, None if old is _MISSING else old, value))

        if self.error is not None:
            changes.append(Change("error", self.error, None))
            self.error = None

        if changes:
            self.trigger_async("change", changes=changes)

    def _parse_failed(self, result: Result) -> None:
        error = result.error
        if not isinstance(error, ParseFailure):
            error = ParseFailure(result.message, part_id=self.part.id if self.part is not None else None)
        logger.warning("Card model %s failed to parse: %s", self.id, result.message)
        self.error = error
        self.trigger_async("parse-error", error=error)

    def _process_new_responses(self) -> None:
        """Hook for kinds that derive state from ``responses``."""

    # -- part tree handlers ------------------------------------------------

    def _handle_part_changes(self, event: Event) -> None:
        if self.part is not None:
            self._reparse()

    def _handle_part_added(self, event: Event) -> None:
        part: MessagePart = event.get("part")
        message = self.message
        if message is None or self.part is None:
            return

        # A child may have left the message without a removal notification.
        before = len(self.child_parts)
        self.child_parts = [p for p in self.child_parts if p in message.parts]
        pruned = len(self.child_parts) != before

        if part.parent_node_id and part.parent_node_id == self.node_id:
            if part not in self.child_parts:
                self.child_parts.append(part)
            self._watch(part)
            if not self.part.has_content:
                self.part.fetch_content()
            self._reparse()
            self.trigger_async("change")
        elif part is not self.part and part.node_id == self.part.node_id:
            self.part.events.off(owner=self)
            self.part = part
            self._watch(part)
            self._reparse()
            self.trigger_async("change")
        elif pruned:
            self._reparse()
            self.trigger_async("change")

    def _handle_part_removed(self, event: Event) -> None:
        part: MessagePart = event.get("part")
        if not any(p is part for p in self.child_parts):
            return
        self.child_parts = [p for p in self.child_parts if p is not part]
        part.events.off(owner=self)
        self._reparse()
        self.trigger_async("change")

    def _handle_message_destroyed(self, event: Event) -> None:
        self.destroy()

    # -- metadata ----------------------------------------------------------

    def merge_action(self, new_value: ActionSpec | dict[str, Any]) -> None:
        """Fill in missing action event/data; existing values always win."""
        if isinstance(new_value, ActionSpec):
            event, data = new_value.event, new_value.data
        else:
            event, data = new_value.get("event"), new_value.get("data") or {}
        if not self.action.event:
            self.action.event = event
        for key, value in data.items():
            if key not in self.action.data:
                self.action.data[key] = value

    def _property_has_value(self, name: str) -> bool:
        if name == "action":
            return not self.action.is_empty
        default = self.PAYLOAD.model_fields[name].get_default(call_default_factory=True)
        return getattr(self, name) != default

    def _init_body_with_metadata(self, fields: tuple[str, ...] = ()) -> dict[str, Any]:
        names = ("action", "purpose", "custom_data", *fields)
        values = {name: getattr(self, name) for name in names if self._property_has_value(name)}
        return self.PAYLOAD.model_validate(values).model_dump(mode="json", include=set(values))

    # -- generation --------------------------------------------------------

    def attach_child_model(self, model: CardModel, role: str) -> None:
        """Include *model* under *role* when this model generates its message."""
        if self.message is not None:
            raise ValueError(f"{self!r} is already bound to {self.message!r}")
        self._child_models.append((role, model))

    def _generate_parts(self) -> list[MessagePart]:
        body = self._init_body_with_metadata(self.BODY_FIELDS)
        self.part = MessagePart(
            body=json.dumps(body),
            mime_type=self.MIME_TYPE,
            mime_attributes={NODE_ID: self.uuid},
        )
        parts = [self.part]
        for role, child in self._child_models:
            parts.extend(self._add_model(child, role))
        return parts

    def _add_model(self, model: CardModel, role: str) -> list[MessagePart]:
        more = model._generate_parts()
        more[0].role = role
        more[0].parent_node_id = self.part.node_id
        return more

    def _bind_generated(self, message: Message) -> None:
        self.message = message
        self._setup_message(do_not_parse=True)
        for _role, child in self._child_models:
            child._bind_generated(message)

    def generate_message(self, channel: Channel) -> Message:
        if self.message is not None:
            raise ValueError(f"{self!r} is already bound to {self.message!r}")
        parts = self._generate_parts()
        self.part.role = ROOT_ROLE
        message = channel.create_message(id=f"{Message.PREFIX}{self.uuid}", parts=parts)
        self._bind_generated(message)
        return message

    # -- navigation --------------------------------------------------------

    def get_model_from_part(self, role: str) -> CardModel | None:
        part = next((p for p in self.child_parts if p.role == role), None)
        if part is None:
            return None
        return self.client.create_card_model(self.message, part)

    def get_models_from_part(self, role: str) -> list[CardModel]:
        return [
            self.client.create_card_model(self.message, part)
            for part in self.child_parts
            if part.role == role
        ]

    def get_parent_part(self) -> MessagePart | None:
        parent_node_id = self.parent_node_id
        if not parent_node_id or self.message is None:
            return None
        return self.message.get_part_by_node_id(parent_node_id)

    # -- summaries ---------------------------------------------------------

    def get_title(self) -> str:
        return getattr(self, "title", "") or ""

    def get_description(self) -> str:
        return ""

    def get_footer(self) -> str:
        return ""

    def get_one_line_summary(self) -> str:
        return self.get_title() or self.LABEL

    # -- lifecycle ---------------------------------------------------------

    def destroy(self) -> None:
        if self.is_destroyed:
            return
        self.events.dispatch(Event("destroy", self))
        self._unwatch_all()
        if self.client is not None:
            self.client.cardmodels.unregister(self)
        self.message = None
        self.events.off()
        self.is_destroyed = True
