"""cardgraph -- identity-deduplicated messaging entity graph with card models."""

from .cards import ActionSpec, CardModel, ChoiceModel, LinkModel, ModelState, TextModel
from .client import Client
from .errors import (
    CardGraphError,
    InvalidArgumentError,
    LoadError,
    ParseFailure,
    UnsupportedMessageError,
)
from .events import Change, Event
from .messaging import Channel, Message, MessagePart, SyncState

__all__ = [
    "ActionSpec",
    "CardGraphError",
    "CardModel",
    "Change",
    "Channel",
    "ChoiceModel",
    "Client",
    "Event",
    "InvalidArgumentError",
    "LinkModel",
    "LoadError",
    "Message",
    "MessagePart",
    "ModelState",
    "ParseFailure",
    "SyncState",
    "TextModel",
    "UnsupportedMessageError",
]
