"""
Chat Models: rooms, their members, messages and invites.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, BigIntId, utcnow
from .user import User


class InviteStatus:
    """Chat invite states. Only pending invites can be accepted or rejected."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class Chat(Base):
    """
    A named room of member users.

    updated_at is the last-activity timestamp: bumped on every message send
    and used to order chat listings.
    """

    __tablename__ = "chat"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    creator_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("app_user.id"), nullable=False, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False, index=True
    )

    creator: Mapped[User] = relationship()
    # Insertion order of membership rows is the member order
    members: Mapped[list["ChatMember"]] = relationship(
        back_populates="chat",
        order_by="ChatMember.id",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Chat(id={self.id}, name='{self.name}')>"


class ChatMember(Base):
    __tablename__ = "chat_member"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)
    chat_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("chat.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("app_user.id"), nullable=False, index=True
    )
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    __table_args__ = (
        UniqueConstraint("chat_id", "user_id", name="uq_chat_member_pair"),
    )

    chat: Mapped[Chat] = relationship(back_populates="members")
    user: Mapped[User] = relationship()


class ChatMessage(Base):
    """
    A persisted chat message. Immutable after creation.

    reply_to_id must point at a message in the same chat; the message
    pipeline enforces this before insert.
    """

    __tablename__ = "chat_message"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)
    chat_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("chat.id", ondelete="CASCADE"), nullable=False
    )
    sender_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("app_user.id"), nullable=False, index=True
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    reply_to_id: Mapped[Optional[int]] = mapped_column(
        BigIntId, ForeignKey("chat_message.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    __table_args__ = (
        Index("ix_chat_message_chat_created", "chat_id", "created_at"),
    )

    sender: Mapped[User] = relationship()
    reply_to: Mapped[Optional["ChatMessage"]] = relationship(remote_side="ChatMessage.id")

    def __repr__(self) -> str:
        return f"<ChatMessage(id={self.id}, chat_id={self.chat_id}, sender_id={self.sender_id})>"


class ChatInvite(Base):
    __tablename__ = "chat_invite"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)
    chat_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("chat.id", ondelete="CASCADE"), nullable=False, index=True
    )
    from_user_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("app_user.id"), nullable=False, index=True
    )
    to_user_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("app_user.id"), nullable=False, index=True
    )
    status: Mapped[str] = mapped_column(Text, default=InviteStatus.PENDING, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    responded_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    chat: Mapped[Chat] = relationship()
    from_user: Mapped[User] = relationship(foreign_keys=[from_user_id])
    to_user: Mapped[User] = relationship(foreign_keys=[to_user_id])

    def __repr__(self) -> str:
        return f"<ChatInvite(id={self.id}, chat_id={self.chat_id}, status='{self.status}')>"
