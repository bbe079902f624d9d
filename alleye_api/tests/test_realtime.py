"""
Tests for the in-process change notification broadcaster.
"""

from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest
from starlette.websockets import WebSocketState

from alleye.services.realtime import BroadcastManager, publish_safely


def fake_socket(fail=False):
    ws = MagicMock()
    ws.application_state = WebSocketState.CONNECTED
    ws.client_state = WebSocketState.CONNECTED
    ws.send_json = AsyncMock(side_effect=RuntimeError("closed") if fail else None)
    return ws


class TestBroadcastManager:
    @pytest.mark.asyncio
    async def test_publish_change_envelope(self):
        manager = BroadcastManager()
        ws = fake_socket()
        await manager.connect(manager.table_topic("content"), ws)

        await manager.publish_change("content", "INSERT", new={"id": "c1", "title": "New"})

        message = ws.send_json.call_args.args[0]
        assert message["type"] == "change"
        assert message["payload"] == {
            "table": "content",
            "event_type": "INSERT",
            "new": {"id": "c1", "title": "New"},
            "old": None,
        }
        assert "at" in message

    @pytest.mark.asyncio
    async def test_profile_update_reaches_profile_topic(self):
        manager = BroadcastManager()
        user_id = str(uuid4())
        own = fake_socket()
        other = fake_socket()
        await manager.connect(manager.profile_topic(user_id), own)
        await manager.connect(manager.profile_topic(str(uuid4())), other)

        await manager.publish_change("profiles", "UPDATE", new={"id": user_id, "points": 10})

        own.send_json.assert_awaited_once()
        other.send_json.assert_not_called()

    @pytest.mark.asyncio
    async def test_profile_insert_not_sent_to_profile_topic(self):
        manager = BroadcastManager()
        user_id = str(uuid4())
        own = fake_socket()
        await manager.connect(manager.profile_topic(user_id), own)
        await manager.publish_change("profiles", "INSERT", new={"id": user_id})
        own.send_json.assert_not_called()

    @pytest.mark.asyncio
    async def test_dead_sockets_dropped(self):
        manager = BroadcastManager()
        topic = manager.table_topic("news")
        alive, dead = fake_socket(), fake_socket(fail=True)
        closed = fake_socket()
        closed.client_state = WebSocketState.DISCONNECTED
        for ws in (alive, dead, closed):
            await manager.connect(topic, ws)

        await manager.broadcast(topic, {"type": "change"})

        assert manager.subscriber_count(topic) == 1
        alive.send_json.assert_awaited_once()
        closed.send_json.assert_not_called()

    @pytest.mark.asyncio
    async def test_disconnect_many(self):
        manager = BroadcastManager()
        ws = fake_socket()
        topics = [manager.table_topic(t) for t in ("content", "news")]
        await manager.connect_many(topics, ws)
        await manager.disconnect_many(topics, ws)
        assert all(manager.subscriber_count(t) == 0 for t in topics)
        assert not any(t in manager._topics or t in manager._locks for t in topics)

    @pytest.mark.asyncio
    async def test_publish_without_subscribers_creates_no_topic(self):
        manager = BroadcastManager()
        user_id = str(uuid4())
        await manager.publish_change("profiles", "UPDATE", new={"id": user_id, "points": 10})
        assert manager._topics == {}
        assert manager._locks == {}

    @pytest.mark.asyncio
    async def test_topic_kept_while_other_subscribers_remain(self):
        manager = BroadcastManager()
        topic = manager.table_topic("qanda")
        first, second = fake_socket(), fake_socket()
        await manager.connect(topic, first)
        await manager.connect(topic, second)
        await manager.disconnect(topic, first)

        await manager.broadcast(topic, {"type": "change"})

        assert manager.subscriber_count(topic) == 1
        second.send_json.assert_awaited_once()
        first.send_json.assert_not_called()


class TestPublishSafely:
    @pytest.mark.asyncio
    async def test_delivery_errors_are_swallowed(self):
        with patch("alleye.services.realtime.broadcast_manager") as manager:
            manager.publish_change = AsyncMock(side_effect=RuntimeError("boom"))
            await publish_safely("news", "DELETE", old={"id": "n1"})
            manager.publish_change.assert_awaited_once_with("news", "DELETE", new=None, old={"id": "n1"})
