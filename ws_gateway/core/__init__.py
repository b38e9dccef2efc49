"""
WebSocket Gateway Core Module.

- connection/: Connection lifecycle and frame delivery
"""

from ws_gateway.core.connection import (
    ConnectionBroadcaster,
    ConnectionLifecycle,
    encode_frame,
    is_ws_connected,
)

__all__ = [
    "ConnectionBroadcaster",
    "ConnectionLifecycle",
    "encode_frame",
    "is_ws_connected",
]
