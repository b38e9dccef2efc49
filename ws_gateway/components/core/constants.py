"""
WebSocket Gateway Constants.

Centralized close codes, event names, room keys and user-facing messages.
"""

from enum import IntEnum
from typing import Final

__all__ = [
    "WSCloseCode",
    "WSConstants",
    "Events",
    "ErrorMessages",
    "MSG_PING_PLAIN",
    "MSG_PONG_JSON",
    "user_room",
    "chat_room",
]


class WSCloseCode(IntEnum):
    """
    WebSocket close codes used by the gateway.

    Standard codes (1000-1999) from RFC 6455.
    Custom codes (4000-4999) for application-specific errors.
    """

    # Standard codes (RFC 6455)
    NORMAL = 1000  # Normal closure
    MESSAGE_TOO_BIG = 1009  # Frame larger than ws_max_message_size
    SERVER_ERROR = 1011  # Server misconfiguration or unexpected error

    # Custom application codes (4000-4999)
    AUTH_FAILED = 4001  # Missing, invalid or expired token


class WSConstants:
    """
    WebSocket Gateway operational constants.

    At runtime the endpoint reads timeouts and size limits from
    `shared.config.settings`; these are the defaults used when no
    override is passed.
    """

    ENDPOINT: Final[str] = "/ws"

    # WS_RECEIVE_TIMEOUT: 90 seconds
    # Clients ping every 30s; three missed pings means the peer is gone.
    WS_RECEIVE_TIMEOUT: Final[float] = 90.0

    # WS_SEND_TIMEOUT: 5 seconds
    # One slow socket must not hold up a broadcast to the rest of the room.
    WS_SEND_TIMEOUT: Final[float] = 5.0

    # Browsers cannot set headers on WebSocket handshakes, so the token rides
    # in a subprotocol offer "auth.<token>" next to the application protocol.
    AUTH_SUBPROTOCOL_PREFIX: Final[str] = "auth."
    APP_SUBPROTOCOL: Final[str] = "linkboard"

    USER_ROOM_PREFIX: Final[str] = "user:"
    CHAT_ROOM_PREFIX: Final[str] = "chat:"


class Events:
    """Event names carried in the `event` field of every frame."""

    # Client -> server
    SEND_MESSAGE: Final[str] = "send_message"
    JOIN_CHAT: Final[str] = "join_chat"
    LEAVE_CHAT: Final[str] = "leave_chat"
    TYPING: Final[str] = "typing"
    STOP_TYPING: Final[str] = "stop_typing"
    PING: Final[str] = "ping"
    REQUEST_NOTIFICATION_COUNT: Final[str] = "request_notification_count"

    # Server -> client
    CONNECTED: Final[str] = "connected"
    PONG: Final[str] = "pong"
    NEW_MESSAGE: Final[str] = "new_message"
    MESSAGE_SENT: Final[str] = "message_sent"
    JOINED_CHAT: Final[str] = "joined_chat"
    LEFT_CHAT: Final[str] = "left_chat"
    USER_TYPING: Final[str] = "user_typing"
    USER_STOP_TYPING: Final[str] = "user_stop_typing"
    NEW_NOTIFICATION: Final[str] = "new_notification"
    NOTIFICATION_COUNT: Final[str] = "notification_count"
    ERROR: Final[str] = "error"


class ErrorMessages:
    """Human-readable reasons sent in close frames and `error` events."""

    NO_TOKEN: Final[str] = "Authentication error: No token provided"
    INVALID_TOKEN: Final[str] = "Authentication error: Invalid token"
    TOKEN_EXPIRED: Final[str] = "Authentication error: Token expired"
    SERVER_CONFIG: Final[str] = "Server configuration error"

    INVALID_FRAME: Final[str] = "Invalid message format"
    UNKNOWN_EVENT: Final[str] = "Unknown event"
    SEND_FAILED: Final[str] = "Failed to send message"
    JOIN_FAILED: Final[str] = "Failed to join chat"
    REQUEST_FAILED: Final[str] = "Request failed"


MSG_PING_PLAIN: Final[str] = "ping"
MSG_PONG_JSON: Final[str] = '{"event":"pong","data":null}'


def user_room(user_id: int) -> str:
    """Personal room key for a user."""
    return f"{WSConstants.USER_ROOM_PREFIX}{user_id}"


def chat_room(chat_id: int) -> str:
    """Room key for a chat."""
    return f"{WSConstants.CHAT_ROOM_PREFIX}{chat_id}"
