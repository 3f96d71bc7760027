"""Shared utilities."""

from .env_file import EnvFile
from .result import Result
from .singletons import register_singleton, reset_all_singletons
from .text import to_camel, uuid_of

__all__ = [
    "EnvFile",
    "Result",
    "register_singleton",
    "reset_all_singletons",
    "to_camel",
    "uuid_of",
]
