"""Read-only access to a ``.env`` file."""

from __future__ import annotations

from pathlib import Path

from dotenv import dotenv_values


class EnvFile:
    """Lazily parsed ``.env`` file; a missing file reads as empty."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._values: dict[str, str] | None = None

    def _load(self) -> dict[str, str]:
        if self._values is None:
            if self.path.is_file():
                raw = dotenv_values(self.path)
                self._values = {k: v for k, v in raw.items() if v is not None}
            else:
                self._values = {}
        return self._values

    def read(self, key: str) -> str:
        return self._load().get(key, "")

    def reload(self) -> None:
        self._values = None
