"""
Chats router.
Chat creation, membership, invites and the REST message fallback.

Mutations emit the same real-time events as the socket path through the
shared ConnectionManager.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status

from rest_api.core.dependencies import ServiceContainer, get_services
from shared.config.settings import settings
from shared.security.auth import current_user_id
from shared.security.rate_limit import limiter
from shared.utils.schemas import (
    ChatInviteOutput,
    ChatMessageOutput,
    ChatOutput,
    CreateChatRequest,
    InviteDirection,
    InviteRequest,
    SendMessageRequest,
)


router = APIRouter(prefix="/api/chats", tags=["chats"])


# =============================================================================
# Chats
# =============================================================================


@router.post("", response_model=ChatOutput, status_code=status.HTTP_201_CREATED)
async def create_chat(
    body: CreateChatRequest,
    user_id: int = Depends(current_user_id),
    services: ServiceContainer = Depends(get_services),
) -> ChatOutput:
    """Create a chat; the caller becomes its first member."""
    return await services.chats.create_chat(
        user_id,
        body.name,
        invitee_ids=body.invitees,
        invite_usernames=body.invite_usernames,
    )


@router.get("/my", response_model=list[ChatOutput])
async def list_my_chats(
    user_id: int = Depends(current_user_id),
    services: ServiceContainer = Depends(get_services),
) -> list[ChatOutput]:
    """Chats the caller belongs to, most recent activity first."""
    return await services.chats.list_my_chats(user_id)


@router.post("/{chat_id}/leave", status_code=status.HTTP_204_NO_CONTENT)
async def leave_chat(
    chat_id: int,
    user_id: int = Depends(current_user_id),
    services: ServiceContainer = Depends(get_services),
) -> None:
    """
    Leave a chat.

    Live socket subscriptions are not touched; clients emit `leave_chat`.
    """
    await services.chats.leave_chat(user_id, chat_id)


# =============================================================================
# Invites
# =============================================================================


@router.post(
    "/{chat_id}/invite",
    response_model=list[ChatInviteOutput],
    status_code=status.HTTP_201_CREATED,
)
async def invite_to_chat(
    chat_id: int,
    body: InviteRequest,
    user_id: int = Depends(current_user_id),
    services: ServiceContainer = Depends(get_services),
) -> list[ChatInviteOutput]:
    return await services.chats.invite(
        user_id, chat_id, user_ids=body.user_ids, usernames=body.usernames
    )


@router.get("/invites", response_model=list[ChatInviteOutput])
async def list_invites(
    direction: InviteDirection = Query(default="incoming"),
    user_id: int = Depends(current_user_id),
    services: ServiceContainer = Depends(get_services),
) -> list[ChatInviteOutput]:
    """Pending invites addressed to (incoming) or sent by (outgoing) the caller."""
    return await services.chats.list_invites(user_id, direction)


@router.post("/invites/{invite_id}/accept", response_model=ChatOutput)
async def accept_invite(
    invite_id: int,
    user_id: int = Depends(current_user_id),
    services: ServiceContainer = Depends(get_services),
) -> ChatOutput:
    return await services.chats.accept_invite(user_id, invite_id)


@router.post("/invites/{invite_id}/reject", response_model=ChatInviteOutput)
async def reject_invite(
    invite_id: int,
    user_id: int = Depends(current_user_id),
    services: ServiceContainer = Depends(get_services),
) -> ChatInviteOutput:
    return await services.chats.reject_invite(user_id, invite_id)


# =============================================================================
# Messages
# =============================================================================


@router.get("/{chat_id}/messages", response_model=list[ChatMessageOutput])
async def list_messages(
    chat_id: int,
    limit: Optional[int] = Query(default=None, ge=1),
    user_id: int = Depends(current_user_id),
    services: ServiceContainer = Depends(get_services),
) -> list[ChatMessageOutput]:
    """Newest messages of a chat, returned oldest first."""
    return await services.chats.list_messages(user_id, chat_id, limit)


@router.post(
    "/{chat_id}/messages",
    response_model=ChatMessageOutput,
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit(settings.rest_message_rate_limit)
async def send_message(
    request: Request,
    chat_id: int,
    body: SendMessageRequest,
    user_id: int = Depends(current_user_id),
    services: ServiceContainer = Depends(get_services),
) -> ChatMessageOutput:
    """
    Non-real-time entry point for sending a message.

    Same validation, persistence, broadcast and notifications as the
    socket `send_message` event.
    """
    return await services.pipeline.send_message(
        sender_id=user_id,
        chat_id=chat_id,
        content=body.content,
        reply_to=body.reply_to,
    )
