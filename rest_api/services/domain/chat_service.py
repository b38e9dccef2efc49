"""
Chat Service.

Chat creation, invites, membership changes and message history for the
REST API. Every mutation is mirrored to live sockets through the room
broadcaster so both transports render the same state.

REST never mutates live group subscriptions: after accepting an invite or
leaving a chat the client emits join_chat / leave_chat on its socket.
"""

from __future__ import annotations

from typing import Sequence

from sqlalchemy.orm import Session

from rest_api.models import ChatInvite, InviteStatus, NotificationKind, User, utcnow
from rest_api.repositories import ChatRepository, UserRepository
from rest_api.services.domain.outputs import (
    chat_output,
    invite_output,
    message_output,
    user_ref,
)
from rest_api.services.domain.ports import Notifier, RoomBroadcaster
from shared.config.logging import chats_logger as logger
from shared.config.settings import settings
from shared.infrastructure.db import SessionRunner
from shared.utils.exceptions import ForbiddenError, NotFoundError, ValidationError
from shared.utils.schemas import (
    ChatInviteOutput,
    ChatMessageOutput,
    ChatOutput,
    InviteDirection,
    UserRef,
)


class ChatEvents:
    """Server-to-client events emitted by REST-side chat mutations."""

    CHAT_CREATED = "chat_created"
    INVITE_RECEIVED = "chat_invite_received"
    MEMBER_JOINED = "chat_member_joined"
    INVITE_ACCEPTED = "chat_invite_accepted"
    INVITE_ACCEPTED_BY_USER = "chat_invite_accepted_by_user"
    INVITE_REJECTED = "chat_invite_rejected"
    INVITE_REJECTED_BY_USER = "chat_invite_rejected_by_user"
    MEMBER_LEFT = "chat_member_left"
    CHAT_LEFT = "chat_left"


def _load_chat_for_member(repo: ChatRepository, chat_id: int, user_id: int):
    chat = repo.get(chat_id)
    if chat is None:
        raise NotFoundError("Chat not found", chat_id=chat_id)
    if not repo.is_member(chat_id, user_id):
        raise ForbiddenError("Not a member of this chat", chat_id=chat_id, user_id=user_id)
    return chat


class ChatService:
    def __init__(
        self,
        runner: SessionRunner,
        broadcaster: RoomBroadcaster,
        notifier: Notifier,
    ) -> None:
        self._runner = runner
        self._broadcaster = broadcaster
        self._notifier = notifier

    # =========================================================================
    # Chats
    # =========================================================================

    async def create_chat(
        self,
        creator_id: int,
        name: str,
        invitee_ids: Sequence[int] = (),
        invite_usernames: Sequence[str] = (),
    ) -> ChatOutput:
        """
        Create a chat with the creator as its first member and invite others.

        Invitees are resolved by id or case-insensitive username; unknown
        users and the creator are skipped.
        """
        name = (name or "").strip()
        if not name:
            raise ValidationError("Chat name is required", user_id=creator_id)
        if len(name) > settings.chat_name_max_length:
            raise ValidationError(
                f"Chat name exceeds {settings.chat_name_max_length} characters",
                user_id=creator_id,
            )

        def _create(db: Session) -> tuple[ChatOutput, UserRef, list[ChatInviteOutput]]:
            repo = ChatRepository(db)
            users = UserRepository(db)
            invitees = [
                u for u in users.resolve(invitee_ids, invite_usernames) if u.id != creator_id
            ]
            chat = repo.create(name, creator_id)
            invites = [repo.add_invite(chat.id, creator_id, u.id) for u in invitees]
            output = chat_output(repo.get_populated(chat.id))
            creator = user_ref(users.get(creator_id), creator_id)
            return output, creator, [invite_output(i) for i in invites]

        chat, creator, invites = await self._runner.run(_create)
        logger.info("Chat created", chat_id=chat.id, creator_id=creator_id, invited=len(invites))

        await self._broadcaster.broadcast_to_user(
            creator_id, ChatEvents.CHAT_CREATED, chat.to_wire()
        )
        await self._deliver_invites(chat, creator, invites)
        return chat

    async def list_my_chats(self, user_id: int) -> list[ChatOutput]:
        def _list(db: Session) -> list[ChatOutput]:
            return [chat_output(c) for c in ChatRepository(db).chats_for_user(user_id)]

        return await self._runner.run(_list)

    async def leave_chat(self, user_id: int, chat_id: int) -> None:
        def _leave(db: Session) -> tuple[ChatOutput, UserRef]:
            repo = ChatRepository(db)
            _load_chat_for_member(repo, chat_id, user_id)
            repo.remove_member(chat_id, user_id)
            return (
                chat_output(repo.get_populated(chat_id)),
                user_ref(UserRepository(db).get(user_id), user_id),
            )

        chat, member = await self._runner.run(_leave)
        logger.info("User left chat", chat_id=chat_id, user_id=user_id)

        await self._broadcaster.broadcast_to_chat(
            chat_id,
            ChatEvents.MEMBER_LEFT,
            {"chat": chat.to_wire(), "leftMember": member.to_wire()},
        )
        await self._broadcaster.broadcast_to_user(
            user_id, ChatEvents.CHAT_LEFT, {"chatId": chat_id}
        )

    # =========================================================================
    # Messages
    # =========================================================================

    async def list_messages(
        self,
        user_id: int,
        chat_id: int,
        limit: int | None = None,
    ) -> list[ChatMessageOutput]:
        """Newest `limit` messages of a chat, oldest first. Members only."""
        if limit is None:
            limit = settings.chat_messages_default_limit
        limit = min(max(1, limit), settings.chat_messages_max_limit)

        def _list(db: Session) -> list[ChatMessageOutput]:
            repo = ChatRepository(db)
            _load_chat_for_member(repo, chat_id, user_id)
            return [message_output(m) for m in repo.recent_messages(chat_id, limit)]

        return await self._runner.run(_list)

    # =========================================================================
    # Invites
    # =========================================================================

    async def invite(
        self,
        user_id: int,
        chat_id: int,
        user_ids: Sequence[int] = (),
        usernames: Sequence[str] = (),
    ) -> list[ChatInviteOutput]:
        """
        Invite users to a chat the caller belongs to.

        Existing members and users with a pending invite are skipped.

        Raises:
            ValidationError: If nobody is left to invite.
        """

        def _invite(db: Session) -> tuple[ChatOutput, UserRef, list[ChatInviteOutput]]:
            repo = ChatRepository(db)
            users = UserRepository(db)
            chat = _load_chat_for_member(repo, chat_id, user_id)

            invitees: list[User] = [
                u
                for u in users.resolve(user_ids, usernames)
                if not repo.is_member(chat.id, u.id) and not repo.has_pending_invite(chat.id, u.id)
            ]
            if not invitees:
                raise ValidationError("No valid invitees provided", chat_id=chat_id)

            invites = [repo.add_invite(chat.id, user_id, u.id) for u in invitees]
            return (
                chat_output(repo.get_populated(chat.id)),
                user_ref(users.get(user_id), user_id),
                [invite_output(i) for i in invites],
            )

        chat, inviter, invites = await self._runner.run(_invite)
        logger.info("Chat invites sent", chat_id=chat_id, user_id=user_id, count=len(invites))

        await self._deliver_invites(chat, inviter, invites)
        return invites

    async def list_invites(
        self, user_id: int, direction: InviteDirection = "incoming"
    ) -> list[ChatInviteOutput]:
        def _list(db: Session) -> list[ChatInviteOutput]:
            return [invite_output(i) for i in ChatRepository(db).invites_for(user_id, direction)]

        return await self._runner.run(_list)

    async def accept_invite(self, user_id: int, invite_id: int) -> ChatOutput:
        def _accept(db: Session) -> tuple[ChatOutput, UserRef, int]:
            repo = ChatRepository(db)
            invite = self._pending_invite_for(repo, invite_id, user_id)
            invite.status = InviteStatus.ACCEPTED
            invite.responded_at = utcnow()
            repo.add_member(invite.chat_id, user_id)
            return (
                chat_output(repo.get_populated(invite.chat_id)),
                user_ref(invite.to_user, user_id),
                invite.from_user_id,
            )

        chat, member, inviter_id = await self._runner.run(_accept)
        logger.info("Chat invite accepted", invite_id=invite_id, chat_id=chat.id, user_id=user_id)

        chat_wire = chat.to_wire()
        await self._broadcaster.broadcast_to_chat(
            chat.id,
            ChatEvents.MEMBER_JOINED,
            {"chat": chat_wire, "newMember": member.to_wire()},
        )
        await self._broadcaster.broadcast_to_user(
            user_id, ChatEvents.INVITE_ACCEPTED, {"chat": chat_wire}
        )
        await self._broadcaster.broadcast_to_user(
            inviter_id,
            ChatEvents.INVITE_ACCEPTED_BY_USER,
            {"chat": chat_wire, "acceptedBy": member.to_wire()},
        )
        return chat

    async def reject_invite(self, user_id: int, invite_id: int) -> ChatInviteOutput:
        def _reject(db: Session) -> tuple[ChatInviteOutput, UserRef]:
            repo = ChatRepository(db)
            invite = self._pending_invite_for(repo, invite_id, user_id)
            invite.status = InviteStatus.REJECTED
            invite.responded_at = utcnow()
            db.flush()
            return invite_output(invite), user_ref(invite.to_user, user_id)

        invite, member = await self._runner.run(_reject)
        logger.info("Chat invite rejected", invite_id=invite_id, chat_id=invite.chat.id, user_id=user_id)

        await self._broadcaster.broadcast_to_user(
            user_id,
            ChatEvents.INVITE_REJECTED,
            {"inviteId": invite.id, "chatId": invite.chat.id},
        )
        await self._broadcaster.broadcast_to_user(
            invite.from_user.id,
            ChatEvents.INVITE_REJECTED_BY_USER,
            {"chatId": invite.chat.id, "rejectedBy": member.to_wire()},
        )
        return invite

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _pending_invite_for(repo: ChatRepository, invite_id: int, user_id: int) -> ChatInvite:
        invite = repo.get_invite(invite_id)
        if invite is None:
            raise NotFoundError("Invite not found", invite_id=invite_id)
        if invite.to_user_id != user_id:
            raise ForbiddenError(
                "Not authorized to respond to this invite",
                invite_id=invite_id,
                user_id=user_id,
            )
        if invite.status != InviteStatus.PENDING:
            raise ValidationError("Invite already processed", invite_id=invite_id, status=invite.status)
        return invite

    async def _deliver_invites(
        self,
        chat: ChatOutput,
        inviter: UserRef,
        invites: list[ChatInviteOutput],
    ) -> None:
        """Notify each invitee and mirror the invite to their live sockets."""
        chat_wire = chat.to_wire()
        for invite in invites:
            invitee_id = invite.to_user.id
            await self._notifier.notify(
                invitee_id,
                NotificationKind.CHAT_INVITE.value,
                related_id=invite.id,
                related_type="ChatInvite",
                origin_id=inviter.id,
                metadata={"chatId": chat.id, "chatName": chat.name},
            )
            await self._broadcaster.broadcast_to_user(
                invitee_id,
                ChatEvents.INVITE_RECEIVED,
                {"chat": chat_wire, "fromUser": inviter.to_wire()},
            )
