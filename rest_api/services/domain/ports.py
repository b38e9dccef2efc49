"""
Narrow interfaces between the domain services and the socket layer.

The message pipeline needs to notify members and the notification fanout
needs to push to sockets. Both depend on these protocols instead of on
each other or on ws_gateway, so the wiring happens once in the service
container.
"""

from __future__ import annotations

from typing import Any, Protocol

from shared.utils.schemas import NotificationOutput


class RoomBroadcaster(Protocol):
    """Group-send primitives implemented by ws_gateway.ConnectionManager."""

    async def broadcast_to_chat(
        self,
        chat_id: int,
        event: str,
        data: Any,
        exclude: Any = None,
    ) -> int: ...

    async def broadcast_to_user(self, user_id: int, event: str, data: Any) -> int: ...

    def is_user_connected(self, user_id: int) -> bool: ...


class Notifier(Protocol):
    """Notification capability used by the message pipeline and chat service."""

    async def notify(
        self,
        recipient_id: int,
        kind: str,
        related_id: int | None = None,
        related_type: str | None = None,
        origin_id: int | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> NotificationOutput | None: ...

    async def push_unread_count(self, user_id: int) -> int | None: ...
