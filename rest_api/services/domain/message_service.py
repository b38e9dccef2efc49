"""
Message Pipeline.

Validates, persists and fans out a single chat message. The WebSocket
`send_message` handler and the REST `POST /api/chats/{id}/messages` route
both call MessagePipeline.send_message(), so the two entry points share
preconditions, persisted shape, broadcast and notifications.

Preconditions, checked in order, each with its own error:
    1. chat id and non-blank content present     -> ValidationError
    2. chat exists                               -> NotFoundError
    3. sender is a member                        -> ForbiddenError
       content within the length limit           -> ValidationError
    4. reply target exists                       -> NotFoundError
       and belongs to the same chat              -> ValidationError

Duplicate sends are not deduplicated; clients reconcile by message id.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.orm import Session

from rest_api.models import NotificationKind, utcnow
from rest_api.repositories import ChatRepository
from rest_api.services.domain.outputs import message_output
from rest_api.services.domain.ports import Notifier, RoomBroadcaster
from shared.config.logging import chats_logger as logger
from shared.config.settings import settings
from shared.infrastructure.db import SessionRunner
from shared.utils.exceptions import ForbiddenError, NotFoundError, ValidationError
from shared.utils.schemas import ChatMessageOutput

EVENT_NEW_MESSAGE = "new_message"

MSG_REQUIRED = "Chat ID and message content are required"
MSG_CHAT_NOT_FOUND = "Chat not found"
MSG_NOT_MEMBER = "Not a member of this chat"
MSG_REPLY_NOT_FOUND = "Message to reply to not found"
MSG_REPLY_OTHER_CHAT = "Cannot reply to message from different chat"


def coerce_id(value: Any) -> int | None:
    """Accept ints and digit strings from clients; anything else is None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


class MessagePipeline:
    """
    Send-message operation shared by both transports.

    Usage:
        pipeline = MessagePipeline(runner, connection_manager, fanout)
        message = await pipeline.send_message(sender_id=3, chat_id=7, content="hi")
    """

    def __init__(
        self,
        runner: SessionRunner,
        broadcaster: RoomBroadcaster,
        notifier: Notifier,
    ) -> None:
        self._runner = runner
        self._broadcaster = broadcaster
        self._notifier = notifier

    async def send_message(
        self,
        sender_id: int,
        chat_id: Any,
        content: Any,
        reply_to: Any = None,
    ) -> ChatMessageOutput:
        """
        Validate, persist, broadcast and notify.

        Args:
            sender_id: Authenticated user id.
            chat_id: Target chat id (int or digit string).
            content: Message text; trimmed before storing.
            reply_to: Optional id of a message in the same chat.

        Returns:
            The populated message as broadcast to `chat:<id>`.

        Raises:
            ValidationError, NotFoundError, ForbiddenError: Precondition failures.
                Nothing is persisted or broadcast when one is raised.
        """
        target_id = coerce_id(chat_id)
        text = content.strip() if isinstance(content, str) else ""
        if target_id is None or not text:
            raise ValidationError(MSG_REQUIRED, user_id=sender_id)

        max_length = settings.chat_message_max_length

        reply_id = None
        if reply_to is not None:
            reply_id = coerce_id(reply_to)
            if reply_id is None:
                raise NotFoundError(MSG_REPLY_NOT_FOUND, reply_to=reply_to)

        def _persist(db: Session) -> tuple[ChatMessageOutput, list[int], str]:
            repo = ChatRepository(db)

            chat = repo.get(target_id)
            if chat is None:
                raise NotFoundError(MSG_CHAT_NOT_FOUND, chat_id=target_id)

            if not repo.is_member(target_id, sender_id):
                raise ForbiddenError(MSG_NOT_MEMBER, chat_id=target_id, user_id=sender_id)

            if len(text) > max_length:
                raise ValidationError(
                    f"Message content exceeds {max_length} characters",
                    user_id=sender_id,
                    chat_id=target_id,
                )

            if reply_id is not None:
                parent = repo.get_message(reply_id)
                if parent is None:
                    raise NotFoundError(MSG_REPLY_NOT_FOUND, reply_to=reply_id)
                if parent.chat_id != target_id:
                    raise ValidationError(
                        MSG_REPLY_OTHER_CHAT,
                        reply_to=reply_id,
                        chat_id=target_id,
                    )

            now = utcnow()
            message = repo.add_message(target_id, sender_id, text, reply_id, now)
            repo.touch(chat, now)

            populated = repo.get_message_populated(message.id)
            recipients = [uid for uid in repo.member_ids(target_id) if uid != sender_id]
            return message_output(populated), recipients, chat.name

        output, recipients, chat_name = await self._runner.run(_persist)

        logger.info(
            "Chat message sent",
            message_id=output.id,
            chat_id=target_id,
            user_id=sender_id,
            reply_to=reply_id,
        )

        await self._broadcaster.broadcast_to_chat(target_id, EVENT_NEW_MESSAGE, output.to_wire())

        for recipient_id in recipients:
            try:
                await self._notifier.notify(
                    recipient_id,
                    NotificationKind.MESSAGE.value,
                    related_id=output.id,
                    related_type="ChatMessage",
                    origin_id=sender_id,
                    metadata={"chatId": target_id, "chatName": chat_name},
                )
            except Exception:
                logger.warning(
                    "Failed to notify chat member",
                    chat_id=target_id,
                    recipient_id=recipient_id,
                    exc_info=True,
                )

        return output
