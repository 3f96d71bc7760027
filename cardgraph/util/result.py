"""Lightweight result type for decode and parse outcomes."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class Result:
    """Represents the outcome of a step that may fail without raising.

    Supports boolean evaluation, tuple unpacking into ``(success, value)``,
    and carries the exception that caused a failure via *error*.

    Examples::

        r = decode_payload(part.body)
        if r:
            apply(r.value)

        ok, payload = Result.ok(value={})
        Result.fail("bad json", error=exc).unwrap()  # re-raises exc
    """

    success: bool
    message: str = ""
    value: Any = field(default=None, repr=False)
    error: BaseException | None = field(default=None, repr=False)

    # -- constructors ------------------------------------------------------

    @classmethod
    def ok(cls, message: str = "", *, value: Any = None) -> Result:
        return cls(success=True, message=message, value=value)

    @classmethod
    def fail(cls, message: str = "", *, error: BaseException | None = None) -> Result:
        return cls(success=False, message=message, error=error)

    # -- accessors ---------------------------------------------------------

    def unwrap(self) -> Any:
        if self.success:
            return self.value
        if self.error is not None:
            raise self.error
        raise RuntimeError(self.message or "unwrap() called on a failed Result")

    # -- protocols ---------------------------------------------------------

    def __bool__(self) -> bool:
        return self.success

    def __iter__(self):
        yield self.success
        yield self.value
