"""
Notification repository.
"""

from __future__ import annotations

from typing import Any, Sequence

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session, selectinload

from rest_api.models import Notification


class NotificationRepository:
    def __init__(self, db: Session):
        self._db = db

    def create(
        self,
        user_id: int,
        kind: str,
        related_id: int | None,
        related_type: str | None,
        from_user_id: int | None,
        metadata: dict[str, Any] | None,
    ) -> Notification:
        notification = Notification(
            user_id=user_id,
            kind=kind,
            read=False,
            related_id=related_id,
            related_type=related_type,
            from_user_id=from_user_id,
            meta=dict(metadata or {}),
        )
        self._db.add(notification)
        self._db.flush()
        return notification

    def get(self, notification_id: int) -> Notification | None:
        return self._db.scalar(
            select(Notification)
            .where(Notification.id == notification_id)
            .options(selectinload(Notification.from_user))
        )

    def count_unread(self, user_id: int) -> int:
        return self._db.scalar(
            select(func.count(Notification.id)).where(
                Notification.user_id == user_id,
                Notification.read.is_(False),
            )
        ) or 0

    def list_for(self, user_id: int, limit: int, unread_only: bool = False) -> Sequence[Notification]:
        """Newest first."""
        query = (
            select(Notification)
            .where(Notification.user_id == user_id)
            .options(selectinload(Notification.from_user))
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .limit(limit)
        )
        if unread_only:
            query = query.where(Notification.read.is_(False))
        return self._db.scalars(query).all()

    def mark_read(self, notification: Notification) -> None:
        notification.read = True
        self._db.flush()

    def mark_all_read(self, user_id: int) -> int:
        result = self._db.execute(
            update(Notification)
            .where(Notification.user_id == user_id, Notification.read.is_(False))
            .values(read=True)
        )
        return result.rowcount

    def delete(self, notification: Notification) -> None:
        self._db.delete(notification)
        self._db.flush()

    def delete_all(self, user_id: int) -> int:
        result = self._db.execute(
            delete(Notification).where(Notification.user_id == user_id)
        )
        return result.rowcount
