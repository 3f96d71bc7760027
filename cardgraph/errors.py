"""Exception hierarchy for cardgraph."""

from __future__ import annotations


class CardGraphError(Exception):
    """Base class for all errors raised by cardgraph."""


class InvalidArgumentError(CardGraphError, ValueError):
    """Raised synchronously when a lookup receives a malformed identifier."""


class ParseFailure(CardGraphError):
    """A part body could not be turned into model state."""

    def __init__(self, message: str, *, part_id: str | None = None) -> None:
        super().__init__(message)
        self.part_id = part_id


class UnsupportedMessageError(CardGraphError):
    """No card model type recognizes the given message/part combination."""


class LoadError(CardGraphError):
    """The loader could not fetch an entity or part body."""

    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status
