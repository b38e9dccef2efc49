"""
Room Index - group membership for live WebSocket connections.

Maps room keys ("user:<id>", "chat:<id>") to the set of connections
subscribed to them, plus reverse mappings for O(rooms) disconnect.

Mutated only by a connection's own lifecycle events (connect, join,
leave, disconnect). All mutations are synchronous, so on a single event
loop no lock is needed.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import TYPE_CHECKING

from shared.config.logging import get_logger

if TYPE_CHECKING:
    from fastapi import WebSocket

logger = get_logger(__name__)


class RoomIndex:
    """
    Indices maintained:
    - by_room: room key -> set[WebSocket]
    - ws_to_rooms: WebSocket -> set[room key]
    - ws_to_user: WebSocket -> user_id

    Read-only properties return immutable views (MappingProxyType).
    """

    def __init__(self) -> None:
        self._by_room: dict[str, set[WebSocket]] = {}
        self._ws_to_rooms: dict[WebSocket, set[str]] = {}
        self._ws_to_user: dict[WebSocket, int] = {}

    # =========================================================================
    # Immutable views
    # =========================================================================

    @property
    def by_room(self) -> MappingProxyType[str, set["WebSocket"]]:
        """Connections indexed by room key (immutable view)."""
        return MappingProxyType(self._by_room)

    @property
    def total_connections(self) -> int:
        return len(self._ws_to_user)

    @property
    def total_rooms(self) -> int:
        return len(self._by_room)

    # =========================================================================
    # Query methods
    # =========================================================================

    def is_registered(self, ws: "WebSocket") -> bool:
        return ws in self._ws_to_user

    def rooms_of(self, ws: "WebSocket") -> frozenset[str]:
        return frozenset(self._ws_to_rooms.get(ws, ()))

    def members(self, room: str) -> list["WebSocket"]:
        """Snapshot of a room's connections, safe to iterate across awaits."""
        return list(self._by_room.get(room, ()))

    def room_size(self, room: str) -> int:
        return len(self._by_room.get(room, ()))

    # =========================================================================
    # Mutations
    # =========================================================================

    def register(self, ws: "WebSocket", user_id: int) -> None:
        """Track a newly authenticated connection (no rooms yet)."""
        self._ws_to_user[ws] = user_id
        self._ws_to_rooms.setdefault(ws, set())

    def add(self, ws: "WebSocket", room: str) -> bool:
        """
        Subscribe ws to room.

        Returns:
            False if ws was already subscribed (no-op).

        Raises:
            KeyError: If ws was never registered.
        """
        if ws not in self._ws_to_user:
            raise KeyError("connection is not registered")
        members = self._by_room.setdefault(room, set())
        if ws in members:
            return False
        members.add(ws)
        self._ws_to_rooms[ws].add(room)
        return True

    def discard(self, ws: "WebSocket", room: str) -> bool:
        """
        Unsubscribe ws from room.

        Returns:
            False if ws was not subscribed (no-op).
        """
        members = self._by_room.get(room)
        if not members or ws not in members:
            return False
        members.discard(ws)
        if not members:
            del self._by_room[room]
        rooms = self._ws_to_rooms.get(ws)
        if rooms is not None:
            rooms.discard(room)
        return True

    def unregister(self, ws: "WebSocket") -> tuple[int | None, frozenset[str]]:
        """
        Remove ws from every room and forget it.

        Returns:
            The user id it belonged to and the rooms it left.
        """
        rooms = frozenset(self._ws_to_rooms.pop(ws, ()))
        for room in rooms:
            members = self._by_room.get(room)
            if members is None:
                continue
            members.discard(ws)
            if not members:
                del self._by_room[room]
        user_id = self._ws_to_user.pop(ws, None)
        return user_id, rooms
