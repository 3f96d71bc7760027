"""Tests for Channel property changes and server outcomes."""

from __future__ import annotations

import logging

import pytest

from cardgraph.client import Client
from cardgraph.messaging.channel import Channel
from cardgraph.messaging.entity import SyncState

from .conftest import Recorder


class TestCreate:
    def test_client_create_channel(self, client: Client) -> None:
        c = client.create_channel(["alice"], {"topic": "lunch"}, name="Lunch")
        assert c.id.startswith("layer:///channels/")
        assert c.sync_state == SyncState.NEW
        assert c.client_id == "layer:///apps/test"
        assert client.get_channel(c.id) is c
        assert c.uuid == c.id.rsplit("/", 1)[-1]

    def test_create_message(self, channel: Channel) -> None:
        message = channel.create_message()
        assert message.parent_id == channel.id
        assert message.client is channel.client
        assert not message.is_sent


class TestChanges:
    def test_mutations_coalesce_into_one_change(
        self, client: Client, channel: Channel, recorder: Recorder
    ) -> None:
        client.on("channels:change", recorder)
        channel.set_metadata(topic="a")
        channel.set_metadata(color="red")
        channel.add_participants("carol", "alice")
        client.flush()
        assert len(recorder.events) == 1
        event = recorder.events[0]
        assert event.target is channel
        assert [c.property for c in event.changes] == ["metadata", "metadata", "participants"]
        assert event.get_changes_for("participants")[0].new_value == ["alice", "bob", "carol"]
        assert channel.metadata == {"topic": "a", "color": "red"}

    def test_no_op_mutations_are_silent(self, client: Client, channel: Channel, recorder: Recorder) -> None:
        client.on("channels:change", recorder)
        channel.add_participants("alice")
        channel.remove_participants("nobody")
        channel.set_metadata()
        client.flush()
        assert recorder.events == []

    def test_remove_participants(self, client: Client, channel: Channel, recorder: Recorder) -> None:
        channel.on("channels:change", recorder)
        channel.remove_participants("bob")
        client.flush()
        assert channel.participants == ["alice"]
        assert recorder.events[0].changes[0].old_value == ["alice", "bob"]

    def test_change_dropped_when_destroyed_before_flush(
        self, client: Client, channel: Channel, recorder: Recorder
    ) -> None:
        client.on("channels:change", recorder)
        channel.set_metadata(topic="gone")
        channel.destroy()
        client.flush()
        assert recorder.events == []


class TestServerOutcomes:
    @pytest.mark.parametrize("result", [Channel.CREATED, Channel.FOUND])
    def test_sent(self, client: Client, recorder: Recorder, result: str) -> None:
        c = client.create_channel(["alice"])
        c.mark_sending()
        assert c.sync_state == SyncState.SAVING
        client.on("channels:sent", recorder)
        c.mark_sent(result, server_id="layer:///channels/server")
        client.flush()
        assert c.sync_state == SyncState.SYNCED
        assert c.id == "layer:///channels/server"
        assert recorder.events[0].get("result") == result

    def test_invalid_result(self, channel: Channel) -> None:
        with pytest.raises(ValueError):
            channel.mark_sent("Maybe")

    def test_sent_error(
        self, client: Client, recorder: Recorder, caplog: pytest.LogCaptureFixture
    ) -> None:
        c = client.create_channel(["alice"])
        c.mark_sending()
        client.on("channels:sent-error", recorder)
        with caplog.at_level(logging.WARNING):
            c.mark_send_failed({"code": 108, "message": "conflict"})
        client.flush()
        assert c.sync_state == SyncState.NEW
        assert recorder.events[0].get("error") == {"code": 108, "message": "conflict"}
        assert "rejected by server" in caplog.text

    def test_deleted(self, client: Client, channel: Channel, recorder: Recorder) -> None:
        message = channel.create_message()
        client.on("channels:delete", recorder)
        channel.deleted()
        assert recorder.names == ["channels:delete"]
        assert channel.is_destroyed
        assert message.is_destroyed
        channel.deleted()
        assert len(recorder.events) == 1

    def test_destroy_event_is_local(self, client: Client, channel: Channel, recorder: Recorder) -> None:
        local = Recorder()
        channel.on("destroy", local)
        client.on("destroy", recorder)
        channel.destroy()
        assert local.names == ["destroy"]
        assert recorder.events == []
        assert not channel.events.has_listeners()
