"""Tests for the Client context object."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import ClassVar

import pytest

from cardgraph.cards.kinds import TextModel
from cardgraph.client import Client
from cardgraph.config.settings import Settings
from cardgraph.errors import UnsupportedMessageError
from cardgraph.messaging.channel import Channel
from cardgraph.messaging.message import Message, MessagePart

MakeMessage = Callable[..., Message]


class _FancyText(TextModel):
    LABEL: ClassVar[str] = "Fancy"


class TestConstruction:
    def test_defaults_from_settings(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("cardgraph.client.cfg", Settings())
        client = Client()
        assert client.app_id.startswith("layer:///apps/")
        assert client.janitor.limits == {"messages": 500}
        assert client.loader is None

    def test_app_id_from_settings(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CARDGRAPH_APP_ID", "layer:///apps/configured")
        monkeypatch.setattr("cardgraph.client.cfg", Settings())
        assert Client().app_id == "layer:///apps/configured"

    def test_clients_are_isolated(self, client: Client, channel: Channel) -> None:
        other = Client(app_id="layer:///apps/other", cache_limits={})
        assert other.get_channel(channel.id) is None
        twin = Channel(other, id=channel.id)
        assert other.get_channel(channel.id) is twin
        assert client.get_channel(channel.id) is channel

    def test_registry_for(self, client: Client) -> None:
        assert client.registry_for("channels") is client.channels
        assert client.registry_for("messages") is client.messages
        assert client.registry_for("cardmodels") is client.cardmodels
        with pytest.raises(ValueError, match="Unknown entity kind"):
            client.registry_for("identities")


class TestCardModelFactory:
    def test_no_root_part(self, channel: Channel, client: Client) -> None:
        message = channel.create_message([MessagePart("hello")])
        with pytest.raises(UnsupportedMessageError):
            client.create_card_model(message)

    def test_unknown_mime_type(self, client: Client, make_card_message: MakeMessage) -> None:
        message = make_card_message({}, mime_type="application/vnd.layer.card.unknown+json")
        with pytest.raises(UnsupportedMessageError, match="unknown"):
            client.create_card_model(message)

    def test_foreign_part(self, client: Client, make_card_message: MakeMessage) -> None:
        message = make_card_message()
        other = make_card_message(message_id="layer:///messages/m2", root_node="root2")
        with pytest.raises(UnsupportedMessageError):
            client.create_card_model(message, other.get_root_part())

    def test_register_model_type_replaces(
        self, client: Client, make_card_message: MakeMessage, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.INFO):
            client.register_model_type(_FancyText)
        assert "Replacing card model type" in caplog.text
        model = client.create_card_model(make_card_message())
        assert isinstance(model, _FancyText)

    def test_model_types_are_per_client(self, client: Client, make_card_message: MakeMessage) -> None:
        other = Client(app_id="layer:///apps/other", cache_limits={}, model_types=())
        client.register_model_type(_FancyText)
        assert other.model_type_for(make_card_message().get_root_part()) is None


class TestBubbling:
    def test_entity_events_reach_client(self, client: Client, channel: Channel) -> None:
        names: list[str] = []
        client.on("channels:change", lambda e: names.append(e.name))
        channel.set_metadata(topic="x")
        client.flush()
        assert names == ["channels:change"]

    def test_off(self, client: Client, channel: Channel) -> None:
        names: list[str] = []
        handler = names.append
        client.on("channels:change", handler)
        client.off("channels:change", handler)
        channel.set_metadata(topic="x")
        client.flush()
        assert names == []
