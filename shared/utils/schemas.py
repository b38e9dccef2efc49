"""
Shared Pydantic schemas used across the application.

Every schema serializes with camelCase keys (chatId, replyTo, fromUser) so
REST responses and WebSocket payloads have the same shape.
"""

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# =============================================================================
# Common Types
# =============================================================================

InviteStatus = Literal["pending", "accepted", "rejected"]
InviteDirection = Literal["incoming", "outgoing"]


class CamelModel(BaseModel):
    """Base schema: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        """JSON-ready dict with camelCase keys, as sent over the socket."""
        return self.model_dump(mode="json", by_alias=True)


# =============================================================================
# Users
# =============================================================================


class UserRef(CamelModel):
    """Minimal user reference embedded in chats, messages and notifications."""

    id: int
    username: Optional[str] = None


# =============================================================================
# Chat Schemas
# =============================================================================


class ReplyPreview(CamelModel):
    """Denormalized view of the message being replied to."""

    id: int
    content: str
    sender: Optional[UserRef] = None


class ChatMessageOutput(CamelModel):
    """Populated chat message, broadcast as `new_message`."""

    id: int
    chat_id: int
    sender: UserRef
    content: str
    reply_to: Optional[ReplyPreview] = None
    created_at: datetime


class ChatSummary(CamelModel):
    id: int
    name: str


class ChatOutput(CamelModel):
    """Populated chat with its members in join order."""

    id: int
    name: str
    creator: UserRef
    members: list[UserRef]
    created_at: datetime
    updated_at: datetime


class ChatInviteOutput(CamelModel):
    id: int
    chat: ChatSummary
    from_user: UserRef
    to_user: UserRef
    status: InviteStatus
    created_at: datetime
    responded_at: Optional[datetime] = None


class CreateChatRequest(CamelModel):
    """
    Create chat request body.

    Invitees may be given by id, by username (case-insensitive), or both.
    """

    name: str = Field(min_length=1, max_length=100)
    invitees: list[int] = Field(default_factory=list)
    invite_usernames: list[str] = Field(default_factory=list)


class InviteRequest(CamelModel):
    user_ids: list[int] = Field(default_factory=list)
    usernames: list[str] = Field(default_factory=list)


class SendMessageRequest(CamelModel):
    """
    REST fallback for send_message.

    Content is optional here so that missing or blank content is rejected by
    the message pipeline with the same message the socket path returns.
    """

    content: Optional[str] = None
    reply_to: Optional[int] = None


# =============================================================================
# Notification Schemas
# =============================================================================


class NotificationOutput(CamelModel):
    """Populated notification, pushed as `new_notification`."""

    id: int
    user_id: int
    kind: str
    read: bool
    related_id: Optional[int] = None
    related_type: Optional[str] = None
    from_user: Optional[UserRef] = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    text: str
    link: str
    created_at: datetime


class NotificationCount(CamelModel):
    count: int
