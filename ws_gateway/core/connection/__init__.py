"""
Connection Management Module.

Components used by ConnectionManager and the endpoint:
- lifecycle.py: Activation and teardown of an authenticated connection
- broadcaster.py: Frame encoding and bounded-time delivery
"""

from ws_gateway.core.connection.broadcaster import (
    ConnectionBroadcaster,
    encode_frame,
    is_ws_connected,
)
from ws_gateway.core.connection.lifecycle import ConnectionLifecycle

__all__ = [
    "ConnectionBroadcaster",
    "ConnectionLifecycle",
    "encode_frame",
    "is_ws_connected",
]
