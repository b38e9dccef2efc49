"""
SQLAlchemy ORM Models Package.

All models are organized into domain-specific modules:
- base: Base class, primary key type and timestamp helper
- user: User (read-only for the messaging core)
- chat: Chat, ChatMember, ChatMessage, ChatInvite
- notification: Notification, NotificationKind
"""

# Base classes
from .base import Base, BigIntId, utcnow

# Users
from .user import User

# Chats
from .chat import Chat, ChatMember, ChatMessage, ChatInvite, InviteStatus

# Notifications
from .notification import Notification, NotificationKind

__all__ = [
    "Base",
    "BigIntId",
    "utcnow",
    "User",
    "Chat",
    "ChatMember",
    "ChatMessage",
    "ChatInvite",
    "InviteStatus",
    "Notification",
    "NotificationKind",
]
