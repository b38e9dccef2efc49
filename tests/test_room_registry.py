"""
Tests for the room registry (RoomIndex + ConnectionManager).
"""

import asyncio

import pytest
from starlette.websockets import WebSocketState

from ws_gateway.components.connection.index import RoomIndex
from ws_gateway.connection_manager import ConnectionManager


class TestRoomIndex:
    """Test the room index data structure."""

    def test_add_requires_registration(self, fake_ws):
        index = RoomIndex()
        with pytest.raises(KeyError):
            index.add(fake_ws(), "chat:1")

    def test_add_is_idempotent(self, fake_ws):
        index = RoomIndex()
        ws = fake_ws()
        index.register(ws, 1)

        assert index.add(ws, "chat:1") is True
        assert index.add(ws, "chat:1") is False
        assert index.room_size("chat:1") == 1

    def test_discard_unknown_room_is_noop(self, fake_ws):
        index = RoomIndex()
        ws = fake_ws()
        index.register(ws, 1)

        assert index.discard(ws, "chat:9") is False

    def test_empty_rooms_are_dropped(self, fake_ws):
        index = RoomIndex()
        ws = fake_ws()
        index.register(ws, 1)
        index.add(ws, "chat:1")
        index.discard(ws, "chat:1")

        assert "chat:1" not in index.by_room
        assert index.total_rooms == 0

    def test_unregister_leaves_every_room(self, fake_ws):
        index = RoomIndex()
        ws, other = fake_ws(), fake_ws()
        index.register(ws, 1)
        index.register(other, 2)
        for room in ("user:1", "chat:1", "chat:2"):
            index.add(ws, room)
        index.add(other, "chat:1")

        user_id, rooms = index.unregister(ws)

        assert user_id == 1
        assert rooms == {"user:1", "chat:1", "chat:2"}
        assert not index.is_registered(ws)
        assert index.members("chat:1") == [other]
        assert index.total_connections == 1

    def test_members_is_a_snapshot(self, fake_ws):
        index = RoomIndex()
        ws = fake_ws()
        index.register(ws, 1)
        index.add(ws, "chat:1")

        snapshot = index.members("chat:1")
        index.discard(ws, "chat:1")

        assert snapshot == [ws]


class TestConnectionManager:
    """Test group membership and delivery."""

    def test_connect_joins_personal_room(self, manager, fake_ws):
        ws = fake_ws()
        manager.connect(ws, 5)

        assert manager.rooms_of(ws) == {"user:5"}
        assert manager.is_user_connected(5)

    def test_disconnect_twice_is_safe(self, manager, fake_ws):
        ws = fake_ws()
        manager.connect(ws, 5)
        manager.join_chat(ws, 1)

        manager.disconnect(ws)
        manager.disconnect(ws)

        assert not manager.is_registered(ws)
        assert not manager.is_user_connected(5)
        assert manager.get_stats()["active_connections"] == 0

    def test_join_and_leave_are_idempotent(self, manager, fake_ws):
        ws = fake_ws()
        manager.connect(ws, 5)

        assert manager.join_chat(ws, 1) is True
        assert manager.join_chat(ws, 1) is False
        assert manager.leave_chat(ws, 1) is True
        assert manager.leave_chat(ws, 1) is False

    @pytest.mark.asyncio
    async def test_broadcast_reaches_room_only(self, manager, fake_ws):
        a, b, outsider = fake_ws(), fake_ws(), fake_ws()
        for ws, user_id in ((a, 1), (b, 2), (outsider, 3)):
            manager.connect(ws, user_id)
        manager.join_chat(a, 10)
        manager.join_chat(b, 10)

        delivered = await manager.broadcast_to_chat(10, "new_message", {"id": 1})

        assert delivered == 2
        assert a.events("new_message") == [{"event": "new_message", "data": {"id": 1}}]
        assert b.events("new_message")
        assert outsider.frames == []

    @pytest.mark.asyncio
    async def test_broadcast_excludes_connection(self, manager, fake_ws):
        a, b = fake_ws(), fake_ws()
        manager.connect(a, 1)
        manager.connect(b, 2)
        manager.join_chat(a, 10)
        manager.join_chat(b, 10)

        await manager.broadcast_to_chat(10, "user_typing", {"chatId": 10}, exclude=a)

        assert a.frames == []
        assert len(b.frames) == 1

    @pytest.mark.asyncio
    async def test_user_broadcast_reaches_every_connection_of_user(self, manager, fake_ws):
        phone, laptop = fake_ws(), fake_ws()
        manager.connect(phone, 1)
        manager.connect(laptop, 1)

        delivered = await manager.broadcast_to_user(1, "notification_count", {"count": 3})

        assert delivered == 2

    @pytest.mark.asyncio
    async def test_failed_send_does_not_block_others(self, manager, fake_ws):
        broken, healthy = fake_ws(fail=True), fake_ws()
        manager.connect(broken, 1)
        manager.connect(healthy, 2)
        manager.join_chat(broken, 10)
        manager.join_chat(healthy, 10)

        delivered = await manager.broadcast_to_chat(10, "new_message", {"id": 1})

        assert delivered == 1
        assert healthy.frames
        assert manager.get_stats()["frames_failed"] == 1

    @pytest.mark.asyncio
    async def test_closed_socket_is_skipped(self, manager, fake_ws):
        ws = fake_ws()
        manager.connect(ws, 1)
        ws.application_state = WebSocketState.DISCONNECTED

        assert await manager.send_to(ws, "pong", None) is False
        assert ws.frames == []

    @pytest.mark.asyncio
    async def test_slow_send_times_out(self, fake_ws):
        class SlowWebSocket(fake_ws):
            async def send_text(self, text):
                await asyncio.sleep(5)

        manager = ConnectionManager(send_timeout=0.05)
        slow = SlowWebSocket()
        manager.connect(slow, 1)

        assert await manager.send_to(slow, "pong", None) is False

    def test_stats(self, manager, fake_ws):
        ws = fake_ws()
        manager.connect(ws, 1)
        manager.join_chat(ws, 10)
        manager.join_chat(ws, 11)

        stats = manager.get_stats()

        assert stats["active_connections"] == 1
        assert stats["users_online"] == 1
        assert stats["chat_rooms"] == 2
        assert stats["total_connects"] == 1
