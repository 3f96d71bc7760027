"""Per-client entity registries."""

from .base import EntityRegistry
from .cardmodels import CardModelStore
from .channels import ChannelStore
from .messages import MessageStore

__all__ = [
    "CardModelStore",
    "ChannelStore",
    "EntityRegistry",
    "MessageStore",
]
