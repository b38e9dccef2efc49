"""
WebSocket Connection Manager (Room Registry).

Thin orchestrator that composes the room index and the broadcaster. One
instance is created per application and injected into every component
that needs to broadcast; it is never a module-level singleton.

Room keys:
- user:<id>  personal room, one per authenticated user
- chat:<id>  one per chat, joined on connect and by join_chat
"""

from __future__ import annotations

from typing import Any, TYPE_CHECKING

from shared.config.logging import get_logger
from shared.config.settings import settings
from ws_gateway.components.connection.index import RoomIndex
from ws_gateway.components.core.constants import WSConstants, chat_room, user_room
from ws_gateway.core.connection.broadcaster import ConnectionBroadcaster, is_ws_connected

if TYPE_CHECKING:
    from fastapi import WebSocket

logger = get_logger(__name__)

__all__ = [
    "ConnectionManager",
    "is_ws_connected",
]


class ConnectionManager:
    """
    Manages WebSocket connections and their broadcast groups.

    Group membership changes are synchronous; only the actual sends await.
    Broadcast recipients are snapshotted before the first await, so a
    connection joining or leaving mid-broadcast does not affect it.

    Usage:
        manager = ConnectionManager()
        manager.connect(ws, user_id)          # joins user:<id>
        manager.join_chat(ws, chat_id)        # joins chat:<id>
        await manager.broadcast_to_chat(chat_id, "new_message", payload)
        manager.disconnect(ws)                # leaves every room
    """

    def __init__(self, send_timeout: float | None = None) -> None:
        self._index = RoomIndex()
        self._broadcaster = ConnectionBroadcaster(
            send_timeout=send_timeout if send_timeout is not None else settings.ws_send_timeout
        )
        self._total_connects = 0

    @property
    def index(self) -> RoomIndex:
        return self._index

    # =========================================================================
    # Connection lifecycle
    # =========================================================================

    def connect(self, websocket: "WebSocket", user_id: int) -> None:
        """Register an authenticated connection and join its personal room."""
        self._index.register(websocket, user_id)
        self._index.add(websocket, user_room(user_id))
        self._total_connects += 1
        logger.info(
            "WebSocket registered",
            user_id=user_id,
            total=self._index.total_connections,
        )

    def disconnect(self, websocket: "WebSocket") -> None:
        """Remove a connection from every room. Safe to call twice."""
        user_id, rooms = self._index.unregister(websocket)
        if user_id is None:
            return
        logger.info(
            "WebSocket unregistered",
            user_id=user_id,
            rooms=len(rooms),
            total=self._index.total_connections,
        )

    # =========================================================================
    # Group membership (idempotent)
    # =========================================================================

    def join_room(self, websocket: "WebSocket", room: str) -> bool:
        """Subscribe to a room. Returns False if already subscribed."""
        return self._index.add(websocket, room)

    def leave_room(self, websocket: "WebSocket", room: str) -> bool:
        """Unsubscribe from a room. Returns False if not subscribed."""
        return self._index.discard(websocket, room)

    def join_chat(self, websocket: "WebSocket", chat_id: int) -> bool:
        return self.join_room(websocket, chat_room(chat_id))

    def leave_chat(self, websocket: "WebSocket", chat_id: int) -> bool:
        return self.leave_room(websocket, chat_room(chat_id))

    def rooms_of(self, websocket: "WebSocket") -> frozenset[str]:
        return self._index.rooms_of(websocket)

    def is_registered(self, websocket: "WebSocket") -> bool:
        return self._index.is_registered(websocket)

    def is_user_connected(self, user_id: int) -> bool:
        return self._index.room_size(user_room(user_id)) > 0

    # =========================================================================
    # Sending
    # =========================================================================

    async def send_to(self, websocket: "WebSocket", event: str, data: Any) -> bool:
        """Send one frame to a single connection."""
        return await self._broadcaster.send(websocket, event, data)

    async def broadcast_to_room(
        self,
        room: str,
        event: str,
        data: Any,
        exclude: "WebSocket | None" = None,
    ) -> int:
        """
        Send a frame to every connection in a room.

        Args:
            room: Room key.
            event: Event name.
            data: JSON-serializable payload.
            exclude: Connection to skip (typing signals never echo to self).

        Returns:
            Number of connections reached.
        """
        recipients = [ws for ws in self._index.members(room) if ws is not exclude]
        return await self._broadcaster.send_many(recipients, event, data, context=room)

    async def broadcast_to_chat(
        self,
        chat_id: int,
        event: str,
        data: Any,
        exclude: "WebSocket | None" = None,
    ) -> int:
        return await self.broadcast_to_room(chat_room(chat_id), event, data, exclude=exclude)

    async def broadcast_to_user(self, user_id: int, event: str, data: Any) -> int:
        return await self.broadcast_to_room(user_room(user_id), event, data)

    # =========================================================================
    # Statistics
    # =========================================================================

    def get_stats(self) -> dict[str, Any]:
        rooms = self._index.by_room
        return {
            "active_connections": self._index.total_connections,
            "total_connects": self._total_connects,
            "users_online": sum(1 for r in rooms if r.startswith(WSConstants.USER_ROOM_PREFIX)),
            "chat_rooms": sum(1 for r in rooms if r.startswith(WSConstants.CHAT_ROOM_PREFIX)),
            "frames_sent": self._broadcaster.sent_count,
            "frames_failed": self._broadcaster.failed_count,
        }
