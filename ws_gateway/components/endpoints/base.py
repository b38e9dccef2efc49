"""
WebSocket Endpoint Base Class.

Owns the connection lifecycle and the receive loop; subclasses supply
authentication, registration and per-frame handling.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from fastapi import WebSocket, WebSocketDisconnect

from shared.config.logging import ws_gateway_logger as logger
from shared.config.settings import settings
from ws_gateway.components.core.constants import WSCloseCode, WSConstants
from ws_gateway.components.connection.heartbeat import handle_heartbeat
from ws_gateway.components.core.context import (
    ConnectionState,
    WebSocketContext,
    sanitize_log_data,
)

if TYPE_CHECKING:
    from ws_gateway.connection_manager import ConnectionManager


class WebSocketEndpointBase(ABC):
    """
    Base class for WebSocket endpoints.

    Lifecycle handled by run():
    1. Authenticate (CONNECTING -> AUTHENTICATING)
    2. Register connection and join rooms (-> ACTIVE)
    3. Message loop
    4. Unregister on disconnect (-> DISCONNECTED)

    Subclasses implement:
    - validate_auth(): Authenticate and accept, or close and return None
    - register_connection(): Bring the connection to ACTIVE
    - unregister_connection(): Leave every room
    - handle_message(): Process one non-heartbeat frame
    """

    def __init__(
        self,
        websocket: WebSocket,
        manager: "ConnectionManager",
        endpoint_name: str = WSConstants.ENDPOINT,
        receive_timeout: float | None = None,
        max_message_size: int | None = None,
    ):
        """
        Initialize the endpoint handler.

        Args:
            websocket: The WebSocket connection.
            manager: ConnectionManager instance.
            endpoint_name: Name for logging (e.g., "/ws").
            receive_timeout: Idle seconds before the server closes the socket.
            max_message_size: Largest accepted frame in bytes.
        """
        self.websocket = websocket
        self.manager = manager
        self.endpoint_name = endpoint_name
        self.receive_timeout = (
            receive_timeout if receive_timeout is not None else settings.ws_receive_timeout
        )
        self.max_message_size = (
            max_message_size if max_message_size is not None else settings.ws_max_message_size
        )

        self.context = WebSocketContext.from_websocket(websocket, endpoint_name)

    @abstractmethod
    async def validate_auth(self) -> dict[str, Any] | None:
        """
        Authenticate the handshake.

        Returns:
            Identity fields (user_id, username) on success. On failure the
            implementation closes the socket and returns None.
        """
        pass

    @abstractmethod
    async def register_connection(self, context: WebSocketContext) -> None:
        pass

    @abstractmethod
    async def unregister_connection(self, context: WebSocketContext) -> None:
        pass

    @abstractmethod
    async def handle_message(self, data: str) -> None:
        pass

    async def run(self) -> None:
        """Main entry point - run the WebSocket endpoint."""
        self.context.transition(ConnectionState.AUTHENTICATING)

        identity = await self.validate_auth()
        if identity is None:
            self.context.transition(ConnectionState.DISCONNECTED)
            return

        self.context.user_id = identity["user_id"]
        self.context.username = identity.get("username")

        try:
            try:
                await self.register_connection(self.context)
            except WebSocketDisconnect:
                self.log_disconnect("client_disconnect_during_setup")
                return
            except Exception as e:
                logger.error(
                    "Unexpected error during connection setup",
                    endpoint=self.endpoint_name,
                    identifier=self.context.identifier,
                    error=str(e),
                    exc_info=True,
                )
                await self._close(WSCloseCode.SERVER_ERROR, "Connection setup failed")
                return

            self.context.audit("CONNECT", username=self.context.username)

            try:
                await self._message_loop()
            except WebSocketDisconnect as e:
                self.log_disconnect("client_disconnect", code=e.code)
        finally:
            await self.unregister_connection(self.context)
            if self.context.user_id is not None:
                self.context.audit("DISCONNECT")

    def log_disconnect(self, reason: str, **extra: Any) -> None:
        logger.info(
            "WebSocket disconnected",
            endpoint=self.endpoint_name,
            identifier=self.context.identifier,
            reason=reason,
            **extra,
        )

    async def _message_loop(self) -> None:
        """
        Main message processing loop.

        Frames on one connection are handled one at a time, in receipt order.
        """
        while True:
            data = await self._receive_with_timeout()
            if data is None:
                logger.info(
                    "Connection timed out (no messages)",
                    endpoint=self.endpoint_name,
                    identifier=self.context.identifier,
                    timeout=self.receive_timeout,
                )
                await self._close(WSCloseCode.NORMAL, "Connection timeout")
                break

            if len(data.encode("utf-8")) > self.max_message_size:
                logger.warning(
                    "Message too large",
                    identifier=self.context.identifier,
                    size=len(data),
                    limit=self.max_message_size,
                )
                await self._close(WSCloseCode.MESSAGE_TOO_BIG, "Message too large")
                break

            if await handle_heartbeat(self.websocket, data):
                continue

            await self.handle_message(data)

    async def _receive_with_timeout(self) -> str | None:
        """
        Receive one frame as text.

        Returns:
            Message data, or None on timeout.

        Raises:
            WebSocketDisconnect: When the client goes away.
        """
        try:
            message = await asyncio.wait_for(
                self.websocket.receive(),
                timeout=self.receive_timeout,
            )
        except asyncio.TimeoutError:
            return None

        if message["type"] == "websocket.disconnect":
            raise WebSocketDisconnect(message.get("code", WSCloseCode.NORMAL), message.get("reason"))

        text = message.get("text")
        if text is None:
            raw = message.get("bytes") or b""
            text = raw.decode("utf-8", errors="replace")
            logger.debug(
                "Binary frame received",
                identifier=self.context.identifier,
                preview=sanitize_log_data(text),
            )
        return text

    async def _close(self, code: int, reason: str) -> None:
        try:
            await self.websocket.close(code=code, reason=reason)
        except (RuntimeError, ConnectionError, OSError):
            # Already closed by the peer
            pass
