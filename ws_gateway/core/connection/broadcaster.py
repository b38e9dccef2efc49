"""
Connection Broadcaster.

Sends frames to one or many WebSocket connections. A broadcast takes a
synchronous snapshot of the recipients, then sends to all of them in
parallel; one failing or slow socket never blocks or fails the others.
"""

from __future__ import annotations

import asyncio
import json
from typing import TYPE_CHECKING, Any, Iterable

from starlette.websockets import WebSocketState

from shared.config.logging import get_logger
from ws_gateway.components.core.constants import WSConstants

if TYPE_CHECKING:
    from fastapi import WebSocket

logger = get_logger(__name__)


def is_ws_connected(ws: "WebSocket") -> bool:
    """
    Check if WebSocket is in connected state before sending.

    Starlette exposes CONNECTING / CONNECTED / DISCONNECTED for both sides;
    only sockets where both are CONNECTED can take a frame.
    """
    return (
        ws.client_state == WebSocketState.CONNECTED
        and ws.application_state == WebSocketState.CONNECTED
    )


def encode_frame(event: str, data: Any) -> str:
    """Serialize an {"event", "data"} frame."""
    return json.dumps({"event": event, "data": data}, separators=(",", ":"), default=str)


class ConnectionBroadcaster:
    """
    Handles sending frames to WebSocket connections.

    Each send is bounded by send_timeout; failures are logged at debug
    level and counted as not delivered.
    """

    def __init__(self, send_timeout: float = WSConstants.WS_SEND_TIMEOUT) -> None:
        self._send_timeout = send_timeout
        self._sent = 0
        self._failed = 0

    @property
    def sent_count(self) -> int:
        return self._sent

    @property
    def failed_count(self) -> int:
        return self._failed

    async def send(self, ws: "WebSocket", event: str, data: Any) -> bool:
        """
        Send one frame to a single connection.

        Returns:
            True if sent successfully, False otherwise.
        """
        return await self._send_text(ws, encode_frame(event, data))

    async def send_many(
        self,
        connections: Iterable["WebSocket"],
        event: str,
        data: Any,
        context: str = "broadcast",
    ) -> int:
        """
        Send one frame to many connections in parallel.

        Args:
            connections: Recipient snapshot.
            event: Event name.
            data: JSON-serializable payload.
            context: Label for log lines (usually the room key).

        Returns:
            Number of connections that received the frame.
        """
        targets = list(connections)
        if not targets:
            return 0

        text = encode_frame(event, data)
        results = await asyncio.gather(
            *(self._send_text(ws, text) for ws in targets),
            return_exceptions=True,
        )
        delivered = sum(1 for r in results if r is True)

        if delivered < len(targets):
            logger.debug(
                "Broadcast partially delivered",
                context=context,
                event=event,
                delivered=delivered,
                total=len(targets),
            )
        return delivered

    async def _send_text(self, ws: "WebSocket", text: str) -> bool:
        if not is_ws_connected(ws):
            self._failed += 1
            return False
        try:
            await asyncio.wait_for(ws.send_text(text), timeout=self._send_timeout)
        except asyncio.TimeoutError:
            self._failed += 1
            logger.warning("Send timed out", timeout=self._send_timeout)
            return False
        except Exception as e:
            self._failed += 1
            logger.debug("Send failed", error=str(e))
            return False
        self._sent += 1
        return True
