"""
Core WebSocket Gateway components.

Constants and per-connection context. Dependency wiring lives in
ws_gateway.components.core.dependencies.
"""

from ws_gateway.components.core.constants import (
    ErrorMessages,
    Events,
    WSCloseCode,
    WSConstants,
    chat_room,
    user_room,
)
from ws_gateway.components.core.context import (
    ConnectionState,
    WebSocketContext,
    sanitize_log_data,
)

__all__ = [
    # Constants
    "ErrorMessages",
    "Events",
    "WSCloseCode",
    "WSConstants",
    "chat_room",
    "user_room",
    # Context
    "ConnectionState",
    "WebSocketContext",
    "sanitize_log_data",
]
