"""Reset hooks for process-wide singletons (settings), used by tests."""

from __future__ import annotations

from collections.abc import Callable

_reset_fns: list[Callable[[], None]] = []


def register_singleton(reset_fn: Callable[[], None]) -> Callable[[], None]:
    """Register *reset_fn* to rebuild a module-level singleton.

    Returns the function so it can be used as a decorator.
    """
    if reset_fn not in _reset_fns:
        _reset_fns.append(reset_fn)
    return reset_fn


def reset_all_singletons() -> None:
    """Run every registered reset hook in registration order."""
    for fn in list(_reset_fns):
        fn()
