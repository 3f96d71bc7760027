"""Client settings -- read from the environment and an optional ``.env`` file.

All configuration is consolidated here.  Values are plain attributes so
tests can patch them with ``patch.multiple``.
"""

from __future__ import annotations

import logging
import os

from ..util.env_file import EnvFile
from ..util.singletons import register_singleton

LOG_FORMAT = "%(asctime)s  %(name)s  %(levelname)s  %(message)s"


def _int(raw: str, default: int) -> int:
    try:
        return int(raw) if raw else default
    except ValueError:
        logging.getLogger(__name__).warning("Ignoring non-integer setting %r", raw)
        return default


def _float(raw: str, default: float) -> float:
    try:
        return float(raw) if raw else default
    except ValueError:
        logging.getLogger(__name__).warning("Ignoring non-numeric setting %r", raw)
        return default


class Settings:
    """Runtime configuration sourced from environment variables and ``.env``."""

    def __init__(self) -> None:
        self.env = EnvFile(os.getenv("DOTENV_PATH") or ".env")
        self.reload()

    def reload(self) -> None:
        """Re-read the ``.env`` file and environment variables."""
        self.env.reload()
        e = self._read

        self.app_id: str = e("CARDGRAPH_APP_ID")
        self.api_url: str = e("CARDGRAPH_API_URL").rstrip("/")
        self.api_token: str = e("CARDGRAPH_API_TOKEN")
        self.load_timeout: float = _float(e("CARDGRAPH_LOAD_TIMEOUT"), 30.0)

        self.message_cache_limit: int = _int(e("CARDGRAPH_MESSAGE_CACHE_LIMIT"), 500)
        self.channel_cache_limit: int = _int(e("CARDGRAPH_CHANNEL_CACHE_LIMIT"), 0)

        self.log_level: str = (e("CARDGRAPH_LOG_LEVEL") or "INFO").upper()

    @property
    def cache_limits(self) -> dict[str, int]:
        """Per-kind eviction limits; ``0`` means unlimited and is omitted."""
        limits = {
            "messages": self.message_cache_limit,
            "channels": self.channel_cache_limit,
        }
        return {kind: limit for kind, limit in limits.items() if limit > 0}

    # -- helpers -----------------------------------------------------------

    def _read(self, key: str) -> str:
        return os.getenv(key) or self.env.read(key)


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(
        level=getattr(logging, (level or cfg.log_level).upper(), logging.INFO),
        format=LOG_FORMAT,
    )


# Module-level singleton
cfg = Settings()


def _reset_cfg() -> None:
    global cfg
    cfg = Settings()


register_singleton(_reset_cfg)
