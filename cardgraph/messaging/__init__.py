"""Messaging entities -- channels, messages and message parts."""

from .channel import Channel
from .entity import Entity, Registrable, SyncState
from .message import ROOT_ROLE, Message, MessagePart, parse_mime_type

__all__ = [
    "Channel",
    "Entity",
    "Message",
    "MessagePart",
    "ROOT_ROLE",
    "Registrable",
    "SyncState",
    "parse_mime_type",
]
