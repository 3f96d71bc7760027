"""Identifier and key-casing helpers."""

from __future__ import annotations


def to_camel(snake: str) -> str:
    parts = snake.split("_")
    return parts[0] + "".join(p.capitalize() for p in parts[1:])


def uuid_of(entity_id: str) -> str:
    """Last path segment of a ``layer:///`` identifier."""
    return entity_id.rstrip("/").rsplit("/", 1)[-1] if entity_id else ""
