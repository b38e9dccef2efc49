"""
Notification Model.

One row per delivered notification. The unread count is always computed
with a count query over this table, never cached.
"""

from __future__ import annotations

import enum
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Index, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, BigIntId, utcnow
from .user import User


class NotificationKind(str, enum.Enum):
    """Closed set of notification kinds. Values are the wire values."""

    MESSAGE = "message"
    CHAT_INVITE = "chat_invite"
    COMMENT = "comment"
    VOTE = "vote"
    FOLLOW = "follow"
    NEW_POST = "new_post"


class Notification(Base):
    __tablename__ = "notification"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)
    user_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("app_user.id"), nullable=False
    )
    kind: Mapped[str] = mapped_column(Text, nullable=False)
    read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    related_id: Mapped[Optional[int]] = mapped_column(BigIntId)
    related_type: Mapped[Optional[str]] = mapped_column(Text)
    from_user_id: Mapped[Optional[int]] = mapped_column(
        BigIntId, ForeignKey("app_user.id"), nullable=True
    )
    # "metadata" is reserved on declarative classes
    meta: Mapped[dict[str, Any]] = mapped_column("metadata", JSON, default=dict, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    __table_args__ = (
        Index("ix_notification_user_read_created", "user_id", "read", "created_at"),
    )

    from_user: Mapped[Optional[User]] = relationship(foreign_keys=[from_user_id])

    def __repr__(self) -> str:
        return f"<Notification(id={self.id}, user_id={self.user_id}, kind='{self.kind}')>"
