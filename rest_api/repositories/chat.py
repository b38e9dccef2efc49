"""
Chat and User repositories.

ChatRepository doubles as the membership resolver: chat_ids_for_user() is
what the connection lifecycle uses to rebuild a socket's chat rooms.
"""

from __future__ import annotations

from datetime import datetime
from typing import Sequence

from sqlalchemy import delete, exists, func, select
from sqlalchemy.orm import Session, selectinload

from rest_api.models import (
    Chat,
    ChatInvite,
    ChatMember,
    ChatMessage,
    InviteStatus,
    User,
)


class UserRepository:
    """Read-only access to users."""

    def __init__(self, db: Session):
        self._db = db

    def get(self, user_id: int) -> User | None:
        return self._db.get(User, user_id)

    def username(self, user_id: int) -> str | None:
        return self._db.scalar(select(User.username).where(User.id == user_id))

    def resolve(self, user_ids: Sequence[int], usernames: Sequence[str]) -> list[User]:
        """
        Resolve users by id and by case-insensitive username.

        Unknown ids and names are dropped. Result order follows the input:
        ids first, then usernames, with duplicates removed.
        """
        found: dict[int, User] = {}

        if user_ids:
            rows = self._db.scalars(select(User).where(User.id.in_(list(user_ids)))).all()
            by_id = {u.id: u for u in rows}
            for user_id in user_ids:
                user = by_id.get(user_id)
                if user is not None:
                    found.setdefault(user.id, user)

        names = [n.strip().lower() for n in usernames if n and n.strip()]
        if names:
            rows = self._db.scalars(
                select(User).where(func.lower(User.username).in_(names))
            ).all()
            by_name = {u.username.lower(): u for u in rows}
            for name in names:
                user = by_name.get(name)
                if user is not None:
                    found.setdefault(user.id, user)

        return list(found.values())


class ChatRepository:
    """Chats, memberships, messages and invites."""

    def __init__(self, db: Session):
        self._db = db

    # =========================================================================
    # Chats and membership
    # =========================================================================

    def get(self, chat_id: int) -> Chat | None:
        return self._db.get(Chat, chat_id)

    def get_populated(self, chat_id: int) -> Chat | None:
        return self._db.scalar(
            select(Chat)
            .where(Chat.id == chat_id)
            .execution_options(populate_existing=True)
            .options(
                selectinload(Chat.creator),
                selectinload(Chat.members).selectinload(ChatMember.user),
            )
        )

    def create(self, name: str, creator_id: int) -> Chat:
        chat = Chat(name=name, creator_id=creator_id)
        self._db.add(chat)
        self._db.flush()
        self.add_member(chat.id, creator_id)
        return chat

    def is_member(self, chat_id: int, user_id: int) -> bool:
        return bool(
            self._db.scalar(
                select(
                    exists().where(
                        ChatMember.chat_id == chat_id,
                        ChatMember.user_id == user_id,
                    )
                )
            )
        )

    def member_ids(self, chat_id: int) -> list[int]:
        """Member user ids in join order."""
        return list(
            self._db.scalars(
                select(ChatMember.user_id)
                .where(ChatMember.chat_id == chat_id)
                .order_by(ChatMember.id)
            )
        )

    def chat_ids_for_user(self, user_id: int) -> list[int]:
        return list(
            self._db.scalars(
                select(ChatMember.chat_id)
                .where(ChatMember.user_id == user_id)
                .order_by(ChatMember.chat_id)
            )
        )

    def chats_for_user(self, user_id: int) -> Sequence[Chat]:
        """Chats the user belongs to, most recent activity first."""
        return self._db.scalars(
            select(Chat)
            .join(ChatMember, ChatMember.chat_id == Chat.id)
            .where(ChatMember.user_id == user_id)
            .options(
                selectinload(Chat.creator),
                selectinload(Chat.members).selectinload(ChatMember.user),
            )
            .order_by(Chat.updated_at.desc(), Chat.id.desc())
        ).all()

    def add_member(self, chat_id: int, user_id: int) -> bool:
        """Add a member. Returns False if the user already belonged to the chat."""
        if self.is_member(chat_id, user_id):
            return False
        self._db.add(ChatMember(chat_id=chat_id, user_id=user_id))
        self._db.flush()
        return True

    def remove_member(self, chat_id: int, user_id: int) -> bool:
        result = self._db.execute(
            delete(ChatMember).where(
                ChatMember.chat_id == chat_id,
                ChatMember.user_id == user_id,
            )
        )
        return result.rowcount > 0

    def touch(self, chat: Chat, when: datetime) -> None:
        """Set the chat's last-activity timestamp."""
        chat.updated_at = when
        self._db.flush()

    # =========================================================================
    # Messages
    # =========================================================================

    def get_message(self, message_id: int) -> ChatMessage | None:
        return self._db.get(ChatMessage, message_id)

    def get_message_populated(self, message_id: int) -> ChatMessage | None:
        return self._db.scalar(
            select(ChatMessage)
            .where(ChatMessage.id == message_id)
            .options(
                selectinload(ChatMessage.sender),
                selectinload(ChatMessage.reply_to).selectinload(ChatMessage.sender),
            )
        )

    def add_message(
        self,
        chat_id: int,
        sender_id: int,
        content: str,
        reply_to_id: int | None,
        created_at: datetime,
    ) -> ChatMessage:
        message = ChatMessage(
            chat_id=chat_id,
            sender_id=sender_id,
            content=content,
            reply_to_id=reply_to_id,
            created_at=created_at,
        )
        self._db.add(message)
        self._db.flush()
        return message

    def recent_messages(self, chat_id: int, limit: int) -> list[ChatMessage]:
        """Newest `limit` messages, returned oldest first."""
        rows = self._db.scalars(
            select(ChatMessage)
            .where(ChatMessage.chat_id == chat_id)
            .options(
                selectinload(ChatMessage.sender),
                selectinload(ChatMessage.reply_to).selectinload(ChatMessage.sender),
            )
            .order_by(ChatMessage.created_at.desc(), ChatMessage.id.desc())
            .limit(limit)
        ).all()
        return list(reversed(rows))

    # =========================================================================
    # Invites
    # =========================================================================

    def get_invite(self, invite_id: int) -> ChatInvite | None:
        return self._db.scalar(
            select(ChatInvite)
            .where(ChatInvite.id == invite_id)
            .options(
                selectinload(ChatInvite.chat),
                selectinload(ChatInvite.from_user),
                selectinload(ChatInvite.to_user),
            )
        )

    def has_pending_invite(self, chat_id: int, to_user_id: int) -> bool:
        return bool(
            self._db.scalar(
                select(
                    exists().where(
                        ChatInvite.chat_id == chat_id,
                        ChatInvite.to_user_id == to_user_id,
                        ChatInvite.status == InviteStatus.PENDING,
                    )
                )
            )
        )

    def add_invite(self, chat_id: int, from_user_id: int, to_user_id: int) -> ChatInvite:
        invite = ChatInvite(
            chat_id=chat_id,
            from_user_id=from_user_id,
            to_user_id=to_user_id,
            status=InviteStatus.PENDING,
        )
        self._db.add(invite)
        self._db.flush()
        return invite

    def invites_for(self, user_id: int, direction: str) -> Sequence[ChatInvite]:
        """Pending invites received (incoming) or sent (outgoing) by the user."""
        column = ChatInvite.to_user_id if direction == "incoming" else ChatInvite.from_user_id
        return self._db.scalars(
            select(ChatInvite)
            .where(column == user_id, ChatInvite.status == InviteStatus.PENDING)
            .options(
                selectinload(ChatInvite.chat),
                selectinload(ChatInvite.from_user),
                selectinload(ChatInvite.to_user),
            )
            .order_by(ChatInvite.created_at.desc(), ChatInvite.id.desc())
        ).all()
