"""
Notification Fanout and Inbox.

NotificationFanout persists a notification and, when the recipient has a
live socket, pushes it together with the recomputed unread count.
Persistence is the durable record; the live push is best-effort and its
failures are logged and swallowed.

NotificationInbox backs the REST listing/read/delete routes and pushes the
recomputed count after every mutation so other tabs stay in sync.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.orm import Session

from rest_api.models import NotificationKind
from rest_api.repositories import NotificationRepository
from rest_api.services.domain.outputs import notification_output
from rest_api.services.domain.ports import RoomBroadcaster
from shared.config.logging import notifications_logger as logger
from shared.config.settings import settings
from shared.infrastructure.db import SessionRunner
from shared.utils.exceptions import ForbiddenError, NotFoundError
from shared.utils.schemas import NotificationOutput

EVENT_NEW_NOTIFICATION = "new_notification"
EVENT_NOTIFICATION_COUNT = "notification_count"


class NotificationFanout:
    """
    Creates notifications and pushes them to the recipient's personal room.

    Usage:
        fanout = NotificationFanout(runner, connection_manager)
        await fanout.notify(recipient_id=4, kind="message", related_id=msg.id,
                            related_type="ChatMessage", origin_id=3)
    """

    def __init__(self, runner: SessionRunner, broadcaster: RoomBroadcaster) -> None:
        self._runner = runner
        self._broadcaster = broadcaster

    async def notify(
        self,
        recipient_id: int,
        kind: str,
        related_id: int | None = None,
        related_type: str | None = None,
        origin_id: int | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> NotificationOutput | None:
        """
        Create a notification for recipient_id.

        Returns:
            The populated notification, or None when nothing was created
            (self-notification, or persistence failed and was logged).

        Raises:
            ValueError: If kind is not a NotificationKind value.
        """
        kind_value = NotificationKind(kind).value

        if origin_id is not None and origin_id == recipient_id:
            logger.debug("Skipping self-notification", user_id=recipient_id, kind=kind_value)
            return None

        def _create(db: Session) -> NotificationOutput:
            notification = NotificationRepository(db).create(
                user_id=recipient_id,
                kind=kind_value,
                related_id=related_id,
                related_type=related_type,
                from_user_id=origin_id,
                metadata=metadata,
            )
            return notification_output(notification)

        try:
            output = await self._runner.run(_create)
        except Exception:
            logger.error(
                "Failed to persist notification",
                user_id=recipient_id,
                kind=kind_value,
                exc_info=True,
            )
            return None

        logger.debug(
            "Notification created",
            notification_id=output.id,
            user_id=recipient_id,
            kind=kind_value,
        )

        if self._broadcaster.is_user_connected(recipient_id):
            try:
                await self._broadcaster.broadcast_to_user(
                    recipient_id, EVENT_NEW_NOTIFICATION, output.to_wire()
                )
            except Exception:
                logger.warning(
                    "Failed to push notification",
                    notification_id=output.id,
                    user_id=recipient_id,
                    exc_info=True,
                )
            await self.push_unread_count(recipient_id)

        return output

    async def unread_count(self, user_id: int) -> int:
        return await self._runner.run(
            lambda db: NotificationRepository(db).count_unread(user_id)
        )

    async def push_unread_count(self, user_id: int) -> int | None:
        """
        Recompute the unread count and push it to user:<id>.

        Best-effort: failures are logged and None is returned.
        """
        try:
            count = await self.unread_count(user_id)
            await self._broadcaster.broadcast_to_user(
                user_id, EVENT_NOTIFICATION_COUNT, {"count": count}
            )
            return count
        except Exception:
            logger.warning("Failed to push notification count", user_id=user_id, exc_info=True)
            return None


class NotificationInbox:
    """Recipient-side listing, read flags and deletion."""

    def __init__(self, runner: SessionRunner, fanout: NotificationFanout) -> None:
        self._runner = runner
        self._fanout = fanout

    async def list_for(
        self,
        user_id: int,
        limit: int | None = None,
        unread_only: bool = False,
    ) -> list[NotificationOutput]:
        if limit is None:
            limit = settings.notifications_default_limit
        limit = min(max(1, limit), settings.notifications_max_limit)

        def _list(db: Session) -> list[NotificationOutput]:
            rows = NotificationRepository(db).list_for(user_id, limit, unread_only)
            return [notification_output(n) for n in rows]

        return await self._runner.run(_list)

    async def unread_count(self, user_id: int) -> int:
        return await self._fanout.unread_count(user_id)

    async def mark_read(self, user_id: int, notification_id: int) -> NotificationOutput:
        def _mark(db: Session) -> NotificationOutput:
            repo = NotificationRepository(db)
            notification = self._owned(repo, user_id, notification_id)
            repo.mark_read(notification)
            return notification_output(notification)

        output = await self._runner.run(_mark)
        await self._fanout.push_unread_count(user_id)
        return output

    async def mark_all_read(self, user_id: int) -> int:
        updated = await self._runner.run(
            lambda db: NotificationRepository(db).mark_all_read(user_id)
        )
        logger.info("Notifications marked read", user_id=user_id, count=updated)
        await self._fanout.push_unread_count(user_id)
        return updated

    async def delete(self, user_id: int, notification_id: int) -> None:
        def _delete(db: Session) -> None:
            repo = NotificationRepository(db)
            repo.delete(self._owned(repo, user_id, notification_id))

        await self._runner.run(_delete)
        await self._fanout.push_unread_count(user_id)

    async def delete_all(self, user_id: int) -> int:
        deleted = await self._runner.run(
            lambda db: NotificationRepository(db).delete_all(user_id)
        )
        logger.info("Notifications deleted", user_id=user_id, count=deleted)
        await self._fanout.push_unread_count(user_id)
        return deleted

    @staticmethod
    def _owned(repo: NotificationRepository, user_id: int, notification_id: int):
        notification = repo.get(notification_id)
        if notification is None:
            raise NotFoundError("Notification not found", notification_id=notification_id)
        if notification.user_id != user_id:
            raise ForbiddenError(
                "Not authorized to modify this notification",
                notification_id=notification_id,
                user_id=user_id,
            )
        return notification
