"""
Notifications router.
Recipient-side listing, unread count, read flags and deletion.

Every mutation re-pushes `notification_count` to the caller's sockets.
"""

from fastapi import APIRouter, Depends, Query, status

from rest_api.core.dependencies import ServiceContainer, get_services
from shared.security.auth import current_user_id
from shared.utils.schemas import NotificationCount, NotificationOutput


router = APIRouter(prefix="/api/notifications", tags=["notifications"])


@router.get("", response_model=list[NotificationOutput])
async def list_notifications(
    limit: int | None = Query(default=None, ge=1),
    unread: bool = Query(default=False),
    user_id: int = Depends(current_user_id),
    services: ServiceContainer = Depends(get_services),
) -> list[NotificationOutput]:
    """Newest first, each with fromUser, rendered text and link."""
    return await services.inbox.list_for(user_id, limit=limit, unread_only=unread)


@router.get("/unread-count", response_model=NotificationCount)
async def unread_count(
    user_id: int = Depends(current_user_id),
    services: ServiceContainer = Depends(get_services),
) -> NotificationCount:
    count = await services.inbox.unread_count(user_id)
    return NotificationCount(count=count)


@router.put("/read-all")
async def mark_all_read(
    user_id: int = Depends(current_user_id),
    services: ServiceContainer = Depends(get_services),
) -> dict[str, int]:
    updated = await services.inbox.mark_all_read(user_id)
    return {"updated": updated}


@router.put("/{notification_id}/read", response_model=NotificationOutput)
async def mark_read(
    notification_id: int,
    user_id: int = Depends(current_user_id),
    services: ServiceContainer = Depends(get_services),
) -> NotificationOutput:
    return await services.inbox.mark_read(user_id, notification_id)


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_notification(
    notification_id: int,
    user_id: int = Depends(current_user_id),
    services: ServiceContainer = Depends(get_services),
) -> None:
    await services.inbox.delete(user_id, notification_id)


@router.delete("")
async def delete_all_notifications(
    user_id: int = Depends(current_user_id),
    services: ServiceContainer = Depends(get_services),
) -> dict[str, int]:
    deleted = await services.inbox.delete_all(user_id)
    return {"deleted": deleted}
