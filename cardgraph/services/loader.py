"""Loader collaborator -- fetches entities and part bodies on cache misses."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Protocol

from aiohttp import ClientSession, ClientTimeout

from ..config.settings import cfg
from ..errors import LoadError

if TYPE_CHECKING:
    from ..messaging.message import MessagePart

logger = logging.getLogger(__name__)

ID_SCHEME = "layer:///"


class Loader(Protocol):
    async def load(self, kind: str, entity_id: str) -> dict[str, Any]: ...

    async def fetch_part_content(self, part: MessagePart) -> str: ...


class HttpLoader:
    """REST loader: ``layer:///channels/abc`` is fetched from ``<base>/channels/abc``."""

    def __init__(
        self,
        base_url: str | None = None,
        *,
        token: str | None = None,
        timeout: float | None = None,
        session: ClientSession | None = None,
    ) -> None:
        self._base = (base_url if base_url is not None else cfg.api_url).rstrip("/")
        self._token = token if token is not None else cfg.api_token
        self._timeout = ClientTimeout(total=timeout if timeout is not None else cfg.load_timeout)
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> HttpLoader:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    @property
    def session(self) -> ClientSession:
        if self._session is None or self._session.closed:
            self._session = ClientSession(timeout=self._timeout)
            self._owns_session = True
        return self._session

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    def url_for(self, entity_id: str) -> str:
        if not self._base:
            raise LoadError("No API base URL configured (CARDGRAPH_API_URL)")
        path = entity_id[len(ID_SCHEME):] if entity_id.startswith(ID_SCHEME) else entity_id
        return f"{self._base}/{path.lstrip('/')}"

    async def load(self, kind: str, entity_id: str) -> dict[str, Any]:
        url = self.url_for(entity_id)
        logger.debug("[loader] GET %s (%s)", url, kind)
        async with self.session.get(url, headers=self._headers(), timeout=self._timeout) as resp:
            if resp.status != 200:
                raise LoadError(f"Loading {entity_id} failed (HTTP {resp.status})", status=resp.status)
            data = await resp.json()
        if not isinstance(data, dict):
            raise LoadError(f"Unexpected payload for {entity_id}: {type(data).__name__}")
        return data

    async def fetch_part_content(self, part: MessagePart) -> str:
        if not part.content_url and not part.id:
            raise LoadError("Part has neither an id nor a content URL")
        url = part.content_url or self.url_for(part.id)
        headers = {} if part.content_url else self._headers()
        logger.debug("[loader] GET %s (part content)", url)
        async with self.session.get(url, headers=headers, timeout=self._timeout) as resp:
            if resp.status != 200:
                raise LoadError(f"Fetching content of {part.id} failed (HTTP {resp.status})", status=resp.status)
            return await resp.text()

    async def close(self) -> None:
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None
