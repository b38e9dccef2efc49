"""
WebSocket connection context.

Holds per-connection identity and lifecycle state, and funnels audit
logging through one place.
"""

from __future__ import annotations

import enum
import re
import time
from dataclasses import dataclass, field
from typing import Any, TYPE_CHECKING

from shared.config.logging import audit_ws_connection

if TYPE_CHECKING:
    from fastapi import WebSocket


# Pattern to remove control characters from log data
_CONTROL_CHAR_PATTERN = re.compile(
    r'[\x00-\x1f\x7f-\x9f'  # ASCII control characters
    r'\u200b-\u200f'  # Zero-width and direction marks
    r'\u202a-\u202e'  # Bidirectional text formatting (RTL override, etc.)
    r'\u2066-\u2069'  # Isolate formatting characters
    r'\ufeff]'  # BOM / Zero-width no-break space
)


def sanitize_log_data(data: Any, max_length: int = 100) -> str:
    """
    Sanitize user-provided data before logging.

    Truncates first, then strips control and direction-override characters
    and escapes quotes and backslashes.

    Args:
        data: Raw user data (non-strings are converted with str()).
        max_length: Maximum length to include in logs.

    Returns:
        Sanitized, truncated string safe for structured logging.
    """
    if not isinstance(data, str):
        data = str(data)

    truncated = data[:max_length] if len(data) > max_length else data
    was_truncated = len(data) > max_length

    sanitized = _CONTROL_CHAR_PATTERN.sub('', truncated)

    # Replace backslashes first to avoid double-escaping
    sanitized = sanitized.replace('\\', '\\\\')
    sanitized = sanitized.replace('"', '\\"')

    if was_truncated:
        return sanitized + "..."
    return sanitized


class ConnectionState(str, enum.Enum):
    """
    Per-connection state machine.

    CONNECTING -> AUTHENTICATING -> ACTIVE -> DISCONNECTED
    AUTHENTICATING -> DISCONNECTED on auth failure (no room is ever joined).
    """

    CONNECTING = "connecting"
    AUTHENTICATING = "authenticating"
    ACTIVE = "active"
    DISCONNECTED = "disconnected"


_TRANSITIONS: dict[ConnectionState, set[ConnectionState]] = {
    ConnectionState.CONNECTING: {ConnectionState.AUTHENTICATING, ConnectionState.DISCONNECTED},
    ConnectionState.AUTHENTICATING: {ConnectionState.ACTIVE, ConnectionState.DISCONNECTED},
    ConnectionState.ACTIVE: {ConnectionState.DISCONNECTED},
    ConnectionState.DISCONNECTED: set(),
}


@dataclass
class WebSocketContext:
    """
    Context object for one WebSocket connection.

    Usage:
        ctx = WebSocketContext.from_websocket(websocket, "/ws")
        ctx.transition(ConnectionState.AUTHENTICATING)
        ...
        ctx.audit("CONNECT")
    """

    endpoint: str
    origin: str | None = None

    user_id: int | None = None
    username: str | None = None

    state: ConnectionState = ConnectionState.CONNECTING
    connected_at: float = field(default_factory=time.time)

    @classmethod
    def from_websocket(cls, websocket: "WebSocket", endpoint: str) -> "WebSocketContext":
        """
        Create context from a WebSocket connection.

        Only extracts basic connection info (origin); identity is filled in
        after authentication.
        """
        return cls(
            endpoint=endpoint,
            origin=websocket.headers.get("origin"),
        )

    @property
    def identifier(self) -> str:
        """Short identifier for log lines."""
        if self.user_id is None:
            return "anonymous"
        return f"user:{self.user_id}"

    def transition(self, new_state: ConnectionState) -> None:
        """
        Move to new_state.

        Raises:
            RuntimeError: On a transition the state machine does not allow.
        """
        if new_state not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"Invalid connection transition {self.state.value} -> {new_state.value}")
        self.state = new_state

    def audit(self, event_type: str, reason: str | None = None, **extra: Any) -> None:
        """Write an audit record for this connection."""
        audit_ws_connection(
            event_type=event_type,
            endpoint=self.endpoint,
            user_id=self.user_id,
            origin=self.origin,
            reason=reason,
            **extra,
        )
