"""Event emitter and deferred notification queue."""

from .emitter import Change, Emitter, Event, Observable
from .queue import EventQueue, is_coalesced

__all__ = ["Change", "Emitter", "Event", "EventQueue", "Observable", "is_coalesced"]
