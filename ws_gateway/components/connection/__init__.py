"""
Connection management components.

Room index and heartbeat handling.
"""

from ws_gateway.components.connection.index import RoomIndex
from ws_gateway.components.connection.heartbeat import handle_heartbeat, send_pong

__all__ = [
    "RoomIndex",
    "handle_heartbeat",
    "send_pong",
]
