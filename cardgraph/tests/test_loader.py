"""Tests for HttpLoader using aiohttp TestServer."""

from __future__ import annotations

import asyncio

import pytest
from aiohttp import web
from aiohttp.test_utils import TestClient, TestServer

from cardgraph.client import Client
from cardgraph.errors import LoadError
from cardgraph.messaging.message import Message, MessagePart
from cardgraph.services.loader import HttpLoader


def _build_app(seen: list[dict[str, str]] | None = None) -> web.Application:
    app = web.Application()
    seen = seen if seen is not None else []

    async def channel(request: web.Request) -> web.Response:
        seen.append(dict(request.headers))
        if request.match_info["id"] == "missing":
            return web.json_response({"message": "not found"}, status=404)
        if request.match_info["id"] == "weird":
            return web.json_response([1, 2, 3])
        return web.json_response({"participants": ["alice"], "metadata": {"topic": "t"}})

    async def part(request: web.Request) -> web.Response:
        seen.append(dict(request.headers))
        return web.Response(text='{"title": "from server"}', content_type="application/json")

    async def blob(request: web.Request) -> web.Response:
        seen.append(dict(request.headers))
        return web.Response(text="rich content")

    app.router.add_get("/api/channels/{id}", channel)
    app.router.add_get("/api/messages/{mid}/parts/{pid}", part)
    app.router.add_get("/blobs/{name}", blob)
    return app


def _loader(http: TestClient, **kwargs) -> HttpLoader:
    return HttpLoader(str(http.make_url("/api")), token="secret", timeout=5, **kwargs)


class TestUrls:
    def test_url_for(self) -> None:
        loader = HttpLoader("https://api.example.com/v1/", token="", timeout=1)
        assert loader.url_for("layer:///channels/abc") == "https://api.example.com/v1/channels/abc"
        assert loader.url_for("messages/m1") == "https://api.example.com/v1/messages/m1"

    def test_missing_base_url(self) -> None:
        with pytest.raises(LoadError, match="CARDGRAPH_API_URL"):
            HttpLoader("", token="", timeout=1).url_for("layer:///channels/abc")


class TestHttpLoader:
    @pytest.mark.asyncio
    async def test_load(self) -> None:
        seen: list[dict[str, str]] = []
        app = _build_app(seen)
        async with TestClient(TestServer(app)) as http:
            async with _loader(http) as loader:
                data = await loader.load("channels", "layer:///channels/c1")
            assert data == {"participants": ["alice"], "metadata": {"topic": "t"}}
            assert seen[0]["Authorization"] == "Bearer secret"

    @pytest.mark.asyncio
    async def test_http_error_carries_status(self) -> None:
        async with TestClient(TestServer(_build_app())) as http:
            async with _loader(http) as loader:
                with pytest.raises(LoadError) as info:
                    await loader.load("channels", "layer:///channels/missing")
            assert info.value.status == 404

    @pytest.mark.asyncio
    async def test_non_object_payload(self) -> None:
        async with TestClient(TestServer(_build_app())) as http:
            async with _loader(http) as loader:
                with pytest.raises(LoadError, match="Unexpected payload"):
                    await loader.load("channels", "layer:///channels/weird")

    @pytest.mark.asyncio
    async def test_part_content_by_id(self) -> None:
        async with TestClient(TestServer(_build_app())) as http:
            async with _loader(http) as loader:
                part = MessagePart(id="layer:///messages/m1/parts/p1")
                assert await loader.fetch_part_content(part) == '{"title": "from server"}'

    @pytest.mark.asyncio
    async def test_part_content_url_skips_auth(self) -> None:
        seen: list[dict[str, str]] = []
        app = _build_app(seen)
        async with TestClient(TestServer(app)) as http:
            async with _loader(http) as loader:
                part = MessagePart(id="layer:///messages/m1/parts/p1", content_url=str(http.make_url("/blobs/b1")))
                assert await loader.fetch_part_content(part) == "rich content"
            assert "Authorization" not in seen[0]

    @pytest.mark.asyncio
    async def test_part_without_address(self) -> None:
        async with HttpLoader("http://localhost", token="", timeout=1) as loader:
            with pytest.raises(LoadError):
                await loader.fetch_part_content(MessagePart())

    @pytest.mark.asyncio
    async def test_external_session_left_open(self) -> None:
        async with TestClient(TestServer(_build_app())) as http:
            loader = _loader(http, session=http.session)
            await loader.load("channels", "layer:///channels/c1")
            await loader.close()
            assert not http.session.closed


class TestClientIntegration:
    @pytest.mark.asyncio
    async def test_placeholder_loaded_over_http(self) -> None:
        async with TestClient(TestServer(_build_app())) as http:
            async with _loader(http) as loader:
                client = Client(app_id="layer:///apps/http", loader=loader, cache_limits={})
                done = asyncio.Event()
                client.on("channels:loaded", lambda e: done.set())
                channel = client.get_channel("layer:///channels/c1", can_load=True)
                await asyncio.wait_for(done.wait(), timeout=5)
                assert channel.participants == ["alice"]
                assert not channel.is_loading

    @pytest.mark.asyncio
    async def test_card_body_fetched_over_http(self) -> None:
        async with TestClient(TestServer(_build_app())) as http:
            async with _loader(http) as loader:
                client = Client(app_id="layer:///apps/http", loader=loader, cache_limits={})
                root = MessagePart(None, "application/vnd.layer.card.text+json", {"role": "root", "node-id": "p1"})
                message = Message(client, id="layer:///messages/m1", parts=[root], from_server=True)
                model = client.create_card_model(message)
                done = asyncio.Event()
                model.on("change", lambda e: done.set())
                await asyncio.wait_for(done.wait(), timeout=5)
                assert model.title == "from server"
