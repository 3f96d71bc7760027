"""External collaborators -- loading and cache eviction."""

from .cache import CacheJanitor
from .loader import HttpLoader, Loader

__all__ = ["CacheJanitor", "HttpLoader", "Loader"]
