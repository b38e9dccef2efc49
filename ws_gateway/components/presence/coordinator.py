"""
Presence & Typing Coordinator.

Transient, unpersisted signals on chat rooms:
- join_chat: membership-checked subscribe to chat:<id>, confirmed to caller
- leave_chat: unconditional unsubscribe, confirmed to caller
- typing / stop_typing: relayed to every other connection in the room

There is no server-side typing timeout; a client that disconnects while
typing leaves the indicator to expire on the other clients.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy.orm import Session

from rest_api.repositories import ChatRepository
from rest_api.services.domain.message_service import (
    MSG_CHAT_NOT_FOUND,
    MSG_NOT_MEMBER,
    coerce_id,
)
from shared.config.logging import get_logger
from shared.infrastructure.db import SessionRunner
from shared.utils.exceptions import ForbiddenError, NotFoundError, ValidationError
from ws_gateway.components.core.constants import Events, chat_room

if TYPE_CHECKING:
    from fastapi import WebSocket
    from ws_gateway.components.core.context import WebSocketContext
    from ws_gateway.connection_manager import ConnectionManager

logger = get_logger(__name__)


class PresenceCoordinator:
    def __init__(self, manager: "ConnectionManager", runner: SessionRunner) -> None:
        self._manager = manager
        self._runner = runner

    async def join_chat(self, ws: "WebSocket", ctx: "WebSocketContext", chat_id: Any) -> int:
        """
        Subscribe ws to chat:<id> after the same existence and membership
        checks as a message send. Joining twice is a no-op.

        Raises:
            ValidationError: If chat_id is missing or malformed.
            NotFoundError: If the chat does not exist.
            ForbiddenError: If the user is not a member.
        """
        target_id = coerce_id(chat_id)
        if target_id is None:
            raise ValidationError("Chat ID is required", user_id=ctx.user_id)

        def _check(db: Session) -> None:
            repo = ChatRepository(db)
            if repo.get(target_id) is None:
                raise NotFoundError(MSG_CHAT_NOT_FOUND, chat_id=target_id)
            if not repo.is_member(target_id, ctx.user_id):
                raise ForbiddenError(MSG_NOT_MEMBER, chat_id=target_id, user_id=ctx.user_id)

        await self._runner.run(_check)

        if self._manager.join_chat(ws, target_id):
            logger.debug("Joined chat room", chat_id=target_id, user_id=ctx.user_id)
        await self._manager.send_to(ws, Events.JOINED_CHAT, {"chatId": target_id})
        return target_id

    async def leave_chat(self, ws: "WebSocket", ctx: "WebSocketContext", chat_id: Any) -> int | None:
        """Unsubscribe ws from chat:<id>. Leaving a room not joined is a no-op."""
        target_id = coerce_id(chat_id)
        if target_id is None:
            raise ValidationError("Chat ID is required", user_id=ctx.user_id)

        if self._manager.leave_chat(ws, target_id):
            logger.debug("Left chat room", chat_id=target_id, user_id=ctx.user_id)
        await self._manager.send_to(ws, Events.LEFT_CHAT, {"chatId": target_id})
        return target_id

    async def typing(
        self,
        ws: "WebSocket",
        ctx: "WebSocketContext",
        chat_id: Any,
        active: bool = True,
    ) -> int:
        """
        Relay typing start/stop to the rest of the room.

        Unacknowledged. Malformed ids and rooms the connection has not
        joined are ignored.

        Returns:
            Number of other connections reached.
        """
        target_id = coerce_id(chat_id)
        if target_id is None:
            return 0
        if chat_room(target_id) not in self._manager.rooms_of(ws):
            return 0

        event = Events.USER_TYPING if active else Events.USER_STOP_TYPING
        payload = {"userId": ctx.user_id, "username": ctx.username, "chatId": target_id}
        return await self._manager.broadcast_to_chat(target_id, event, payload, exclude=ws)
