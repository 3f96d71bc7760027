"""Shared pytest fixtures for cardgraph tests."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from cardgraph.cards.kinds import TextModel
from cardgraph.client import Client
from cardgraph.events.emitter import Event
from cardgraph.messaging.channel import Channel
from cardgraph.messaging.message import Message, MessagePart


class FakeLoader:
    """In-memory loader; unknown ids fail with ``KeyError``."""

    def __init__(self) -> None:
        self.entities: dict[str, dict[str, Any]] = {}
        self.contents: dict[str, str] = {}
        self.calls: list[tuple[str, str]] = []

    async def load(self, kind: str, entity_id: str) -> dict[str, Any]:
        self.calls.append((kind, entity_id))
        await asyncio.sleep(0)
        return self.entities[entity_id]

    async def fetch_part_content(self, part: MessagePart) -> str:
        self.calls.append(("content", part.id))
        await asyncio.sleep(0)
        return self.contents[part.id]


class Recorder:
    """Collects delivered events for assertions."""

    def __init__(self) -> None:
        self.events: list[Event] = []

    def __call__(self, event: Event) -> None:
        self.events.append(event)

    @property
    def names(self) -> list[str]:
        return [e.name for e in self.events]

    def named(self, name: str) -> list[Event]:
        return [e for e in self.events if e.name == name]


@pytest.fixture(autouse=True)
def _isolate_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    for key in (
        "CARDGRAPH_APP_ID",
        "CARDGRAPH_API_URL",
        "CARDGRAPH_API_TOKEN",
        "CARDGRAPH_LOAD_TIMEOUT",
        "CARDGRAPH_MESSAGE_CACHE_LIMIT",
        "CARDGRAPH_CHANNEL_CACHE_LIMIT",
        "CARDGRAPH_LOG_LEVEL",
    ):
        monkeypatch.delenv(key, raising=False)
    dotenv = tmp_path / ".env"
    monkeypatch.setenv("DOTENV_PATH", str(dotenv))
    return dotenv


@pytest.fixture(autouse=True)
def _reset_singletons(_isolate_env: Path):
    from cardgraph.util.singletons import reset_all_singletons

    reset_all_singletons()
    yield
    reset_all_singletons()


@pytest.fixture()
def loader() -> FakeLoader:
    return FakeLoader()


@pytest.fixture()
def client(loader: FakeLoader) -> Client:
    return Client(app_id="layer:///apps/test", loader=loader, cache_limits={})


@pytest.fixture()
def channel(client: Client) -> Channel:
    c = Channel(client, id="layer:///channels/c1", participants=["alice", "bob"], from_server=True)
    client.flush()
    return c


@pytest.fixture()
def recorder() -> Recorder:
    return Recorder()


@pytest.fixture()
def make_card_message(client: Client, channel: Channel) -> Callable[..., Message]:
    """Build a sent message whose root part is a text card (node-id ``root1`` by default)."""

    def _make(
        body: dict[str, Any] | str | None = None,
        *children: MessagePart,
        message_id: str = "layer:///messages/m1",
        mime_type: str = TextModel.MIME_TYPE,
        root_node: str = "root1",
    ) -> Message:
        if body is None:
            body = {"title": "Hello"}
        raw = body if isinstance(body, str) else json.dumps(body)
        root = MessagePart(
            body=raw,
            mime_type=mime_type,
            mime_attributes={"role": "root", "node-id": root_node},
        )
        message = Message(client, id=message_id, parent_id=channel.id, parts=[root, *children], from_server=True)
        client.flush()
        return message

    return _make


def child_part(body: dict[str, Any] | str | None, *, role: str, node_id: str, parent: str = "root1",
               mime_type: str = "application/json") -> MessagePart:
    raw = body if body is None or isinstance(body, str) else json.dumps(body)
    return MessagePart(
        body=raw,
        mime_type=mime_type,
        mime_attributes={"role": role, "node-id": node_id, "parent-node-id": parent},
    )


async def settle(turns: int = 10) -> None:
    """Let scheduled tasks and queue flushes run."""
    for _ in range(turns):
        await asyncio.sleep(0)
