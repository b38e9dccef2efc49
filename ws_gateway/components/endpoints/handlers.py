"""
Chat WebSocket Endpoint.

Authenticates the handshake, brings the connection to ACTIVE and
dispatches `{"event", "data"}` frames to the message pipeline, the
presence coordinator and the notification fanout.

Errors never close the connection: domain errors are sent back as
`error {message}` to this connection only, anything unexpected is logged
and reported with a generic message.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any, Awaitable, Callable

from fastapi import WebSocket, WebSocketDisconnect

from rest_api.services.domain.message_service import MSG_REQUIRED
from shared.config.logging import get_logger
from shared.utils.exceptions import AppException, ValidationError
from ws_gateway.components.auth.strategies import Handshake
from ws_gateway.components.connection.heartbeat import send_pong
from ws_gateway.components.core.constants import ErrorMessages, Events, WSCloseCode
from ws_gateway.components.core.context import WebSocketContext, sanitize_log_data
from ws_gateway.components.endpoints.base import WebSocketEndpointBase

if TYPE_CHECKING:
    from ws_gateway.components.core.dependencies import GatewayDependencies

logger = get_logger(__name__)

Handler = Callable[[Any], Awaitable[None]]


def _chat_id_from(data: Any) -> Any:
    """join/leave/typing accept either a bare id or {"chatId": id}."""
    if isinstance(data, dict):
        return data.get("chatId")
    return data


class ChatEndpoint(WebSocketEndpointBase):
    """
    WebSocket endpoint for chat and notifications.

    Features:
    - JWT authentication from subprotocol, header or query parameter
    - Personal and chat room subscriptions
    - send_message / join_chat / leave_chat / typing / stop_typing
    - ping and request_notification_count
    """

    def __init__(self, websocket: WebSocket, deps: "GatewayDependencies", **kwargs: Any):
        super().__init__(websocket, deps.manager, **kwargs)
        self.deps = deps
        self._handlers: dict[str, Handler] = {
            Events.SEND_MESSAGE: self._on_send_message,
            Events.JOIN_CHAT: self._on_join_chat,
            Events.LEAVE_CHAT: self._on_leave_chat,
            Events.TYPING: self._on_typing,
            Events.STOP_TYPING: self._on_stop_typing,
            Events.PING: self._on_ping,
            Events.REQUEST_NOTIFICATION_COUNT: self._on_request_notification_count,
        }
        # Generic message used when a handler fails unexpectedly
        self._failure_messages: dict[str, str] = {
            Events.SEND_MESSAGE: ErrorMessages.SEND_FAILED,
            Events.JOIN_CHAT: ErrorMessages.JOIN_FAILED,
        }

    # =========================================================================
    # Lifecycle hooks
    # =========================================================================

    async def validate_auth(self) -> dict[str, Any] | None:
        """
        Authenticate, then accept the transport.

        On failure the transport is still accepted so the client receives
        the close code and reason, then closed immediately.
        """
        handshake = Handshake.from_websocket(self.websocket)
        result = await self.deps.authenticator.authenticate(handshake)

        await self.websocket.accept(subprotocol=handshake.accept_subprotocol)

        if not result.success:
            logger.warning(
                "WebSocket authentication failed",
                reason=result.audit_reason,
                origin=self.context.origin,
            )
            self.context.audit(
                "CONFIG_ERROR" if result.close_code == WSCloseCode.SERVER_ERROR else "AUTH_FAILED",
                reason=result.audit_reason,
            )
            await self._close(result.close_code, result.error_message)
            return None

        return {"user_id": result.identity.user_id, "username": result.identity.username}

    async def register_connection(self, context: WebSocketContext) -> None:
        await self.deps.lifecycle.activate(self.websocket, context)

    async def unregister_connection(self, context: WebSocketContext) -> None:
        await self.deps.lifecycle.deactivate(self.websocket, context)

    # =========================================================================
    # Dispatch
    # =========================================================================

    async def handle_message(self, data: str) -> None:
        try:
            frame = json.loads(data)
        except (ValueError, RecursionError):
            logger.debug(
                "Malformed frame",
                identifier=self.context.identifier,
                message=sanitize_log_data(data),
            )
            await self.send_error(ErrorMessages.INVALID_FRAME)
            return

        if not isinstance(frame, dict) or not isinstance(frame.get("event"), str):
            await self.send_error(ErrorMessages.INVALID_FRAME)
            return

        event = frame["event"]
        handler = self._handlers.get(event)
        if handler is None:
            logger.debug(
                "Unknown event",
                identifier=self.context.identifier,
                event=sanitize_log_data(event),
            )
            await self.send_error(f"{ErrorMessages.UNKNOWN_EVENT}: {sanitize_log_data(event, 50)}")
            return

        try:
            await handler(frame.get("data"))
        except AppException as e:
            await self.send_error(str(e.detail))
        except WebSocketDisconnect:
            raise
        except Exception:
            logger.error(
                "Error handling event",
                event=event,
                identifier=self.context.identifier,
                exc_info=True,
            )
            await self.send_error(self._failure_messages.get(event, ErrorMessages.REQUEST_FAILED))

    async def send_error(self, message: str) -> None:
        await self.manager.send_to(self.websocket, Events.ERROR, {"message": message})

    # =========================================================================
    # Event handlers
    # =========================================================================

    async def _on_send_message(self, data: Any) -> None:
        if not isinstance(data, dict):
            raise ValidationError(MSG_REQUIRED, user_id=self.context.user_id)

        message = await self.deps.pipeline.send_message(
            sender_id=self.context.user_id,
            chat_id=data.get("chatId"),
            content=data.get("content"),
            reply_to=data.get("replyTo"),
        )
        # Broadcast already went out; the ack lets the sender reconcile optimistic state
        await self.manager.send_to(self.websocket, Events.MESSAGE_SENT, {"messageId": message.id})

    async def _on_join_chat(self, data: Any) -> None:
        await self.deps.presence.join_chat(self.websocket, self.context, _chat_id_from(data))

    async def _on_leave_chat(self, data: Any) -> None:
        await self.deps.presence.leave_chat(self.websocket, self.context, _chat_id_from(data))

    async def _on_typing(self, data: Any) -> None:
        await self.deps.presence.typing(self.websocket, self.context, _chat_id_from(data), active=True)

    async def _on_stop_typing(self, data: Any) -> None:
        await self.deps.presence.typing(self.websocket, self.context, _chat_id_from(data), active=False)

    async def _on_ping(self, data: Any) -> None:
        await send_pong(self.websocket)

    async def _on_request_notification_count(self, data: Any) -> None:
        count = await self.deps.fanout.unread_count(self.context.user_id)
        await self.manager.send_to(self.websocket, Events.NOTIFICATION_COUNT, {"count": count})
