"""
Connection Lifecycle Management.

Brings an authenticated connection to ACTIVE and tears it down again.

On activation, in order:
    1. join the personal room user:<id>
    2. send the current unread notification count to this connection only
    3. join chat:<id> for every chat the user belongs to
    then emit `connected` so the client knows sends are accepted.

Steps 2 and 3 are best-effort: a failure is logged and the connection
still becomes ACTIVE. Teardown removes the connection from every room and
announces nothing to other participants.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

from rest_api.repositories import ChatRepository
from shared.config.logging import get_logger
from shared.infrastructure.db import SessionRunner
from ws_gateway.components.core.constants import Events
from ws_gateway.components.core.context import ConnectionState

if TYPE_CHECKING:
    from fastapi import WebSocket
    from rest_api.services.domain import NotificationFanout
    from ws_gateway.components.core.context import WebSocketContext
    from ws_gateway.connection_manager import ConnectionManager

logger = get_logger(__name__)


class ConnectionLifecycle:
    """
    Manages the lifecycle of WebSocket connections.

    Responsibilities:
    - Register connections in the room registry
    - Initial state sync (unread count, chat rooms)
    - Disconnect and cleanup
    """

    def __init__(
        self,
        manager: "ConnectionManager",
        runner: SessionRunner,
        fanout: "NotificationFanout",
    ) -> None:
        self._manager = manager
        self._runner = runner
        self._fanout = fanout

    async def activate(self, ws: "WebSocket", ctx: "WebSocketContext") -> list[int]:
        """
        Register ws and join its rooms.

        Returns:
            Chat ids whose rooms were joined.
        """
        user_id = ctx.user_id

        self._manager.connect(ws, user_id)
        await self._send_unread_count(ws, user_id)
        chat_ids = await self._join_member_chats(ws, user_id)

        ctx.transition(ConnectionState.ACTIVE)
        await self._manager.send_to(
            ws,
            Events.CONNECTED,
            {"userId": user_id, "username": ctx.username, "chatIds": chat_ids},
        )
        return chat_ids

    async def deactivate(self, ws: "WebSocket", ctx: "WebSocketContext") -> None:
        """Remove ws from every room. Safe to call for a half-set-up connection."""
        self._manager.disconnect(ws)
        if ctx.state != ConnectionState.DISCONNECTED:
            ctx.transition(ConnectionState.DISCONNECTED)

    async def _send_unread_count(self, ws: "WebSocket", user_id: int) -> None:
        try:
            count = await self._fanout.unread_count(user_id)
            await self._manager.send_to(ws, Events.NOTIFICATION_COUNT, {"count": count})
        except Exception:
            logger.warning("Initial notification count failed", user_id=user_id, exc_info=True)

    async def _join_member_chats(self, ws: "WebSocket", user_id: int) -> list[int]:
        def _resolve(db: Session) -> list[int]:
            return ChatRepository(db).chat_ids_for_user(user_id)

        try:
            chat_ids = await self._runner.run(_resolve)
        except Exception:
            logger.warning("Chat membership lookup failed", user_id=user_id, exc_info=True)
            return []

        for chat_id in chat_ids:
            self._manager.join_chat(ws, chat_id)
        logger.debug("Joined chat rooms", user_id=user_id, chats=len(chat_ids))
        return chat_ids
