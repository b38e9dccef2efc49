"""
Heartbeat handling for the WebSocket Gateway.

Clients keep idle connections alive with a plain-text "ping" frame or a
JSON {"event": "ping"} frame; both get a pong back on the same socket.
Any received frame resets the receive timeout in the endpoint loop.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from shared.config.logging import get_logger
from ws_gateway.components.core.constants import MSG_PING_PLAIN, MSG_PONG_JSON

if TYPE_CHECKING:
    from fastapi import WebSocket

_heartbeat_logger = get_logger(__name__)


async def send_pong(ws: "WebSocket") -> None:
    """Reply to a ping. Connection errors are left to the receive loop."""
    try:
        await ws.send_text(MSG_PONG_JSON)
    except (ConnectionError, RuntimeError, OSError):
        # Connection may have closed - caller will handle cleanup
        pass
    except Exception as e:
        _heartbeat_logger.warning(
            "Unexpected error sending heartbeat response",
            error=type(e).__name__,
            message=str(e),
        )


async def handle_heartbeat(ws: "WebSocket", data: str) -> bool:
    """
    Handle a plain-text ping frame.

    Args:
        ws: The WebSocket connection.
        data: The received message data.

    Returns:
        True if message was a heartbeat and was handled, False otherwise.
    """
    if data.strip() == MSG_PING_PLAIN:
        await send_pong(ws)
        return True
    return False
