"""
ORM entity to output schema conversion.

Called inside a unit of work, while relationships can still lazy-load, so
the returned schemas are safe to use after the session closes.
"""

from __future__ import annotations

from rest_api.models import Chat, ChatInvite, ChatMessage, Notification, User
from rest_api.services.domain.notification_kinds import render_notification
from shared.utils.schemas import (
    ChatInviteOutput,
    ChatMessageOutput,
    ChatOutput,
    ChatSummary,
    NotificationOutput,
    ReplyPreview,
    UserRef,
)


def user_ref(user: User | None, user_id: int | None = None) -> UserRef | None:
    if user is not None:
        return UserRef(id=user.id, username=user.username)
    if user_id is not None:
        return UserRef(id=user_id)
    return None


def message_output(message: ChatMessage) -> ChatMessageOutput:
    reply = None
    if message.reply_to is not None:
        reply = ReplyPreview(
            id=message.reply_to.id,
            content=message.reply_to.content,
            sender=user_ref(message.reply_to.sender, message.reply_to.sender_id),
        )
    return ChatMessageOutput(
        id=message.id,
        chat_id=message.chat_id,
        sender=user_ref(message.sender, message.sender_id),
        content=message.content,
        reply_to=reply,
        created_at=message.created_at,
    )


def chat_output(chat: Chat) -> ChatOutput:
    return ChatOutput(
        id=chat.id,
        name=chat.name,
        creator=user_ref(chat.creator, chat.creator_id),
        members=[user_ref(m.user, m.user_id) for m in chat.members],
        created_at=chat.created_at,
        updated_at=chat.updated_at,
    )


def invite_output(invite: ChatInvite) -> ChatInviteOutput:
    return ChatInviteOutput(
        id=invite.id,
        chat=ChatSummary(id=invite.chat.id, name=invite.chat.name),
        from_user=user_ref(invite.from_user, invite.from_user_id),
        to_user=user_ref(invite.to_user, invite.to_user_id),
        status=invite.status,
        created_at=invite.created_at,
        responded_at=invite.responded_at,
    )


def notification_output(notification: Notification) -> NotificationOutput:
    from_user = notification.from_user
    text, link = render_notification(
        notification.kind,
        actor=from_user.username if from_user is not None else None,
        from_user_id=notification.from_user_id,
        related_id=notification.related_id,
        metadata=notification.meta,
    )
    return NotificationOutput(
        id=notification.id,
        user_id=notification.user_id,
        kind=notification.kind,
        read=notification.read,
        related_id=notification.related_id,
        related_type=notification.related_type,
        from_user=user_ref(from_user, notification.from_user_id),
        metadata=dict(notification.meta or {}),
        text=text,
        link=link,
        created_at=notification.created_at,
    )
