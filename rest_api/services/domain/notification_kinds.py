"""
Display text and navigation target for each notification kind.

Every NotificationKind has exactly one entry in KIND_RENDERERS; a missing
entry fails at import time.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from rest_api.models import NotificationKind

DEFAULT_ACTOR = "Someone"


@dataclass(frozen=True)
class NotificationView:
    """The fields a renderer may look at."""

    actor: str
    from_user_id: int | None
    related_id: int | None
    metadata: dict[str, Any]


@dataclass(frozen=True)
class KindRenderer:
    text: Callable[[NotificationView], str]
    link: Callable[[NotificationView], str]


def _vote_text(view: NotificationView) -> str:
    verb = "upvoted" if view.metadata.get("voteType") == "upvote" else "downvoted"
    return f"{view.actor} {verb} your post"


KIND_RENDERERS: dict[NotificationKind, KindRenderer] = {
    NotificationKind.MESSAGE: KindRenderer(
        text=lambda v: f"{v.actor} sent you a message",
        link=lambda v: "/chats",
    ),
    NotificationKind.CHAT_INVITE: KindRenderer(
        text=lambda v: f'{v.actor} invited you to join "{v.metadata.get("chatName") or "a chat"}"',
        link=lambda v: "/chats",
    ),
    NotificationKind.COMMENT: KindRenderer(
        text=lambda v: f"{v.actor} commented on your post",
        link=lambda v: f"/post/{v.metadata.get('postId')}",
    ),
    NotificationKind.VOTE: KindRenderer(
        text=_vote_text,
        link=lambda v: f"/post/{v.related_id}",
    ),
    NotificationKind.FOLLOW: KindRenderer(
        text=lambda v: f"{v.actor} started following you",
        link=lambda v: f"/profile/{v.from_user_id}",
    ),
    NotificationKind.NEW_POST: KindRenderer(
        text=lambda v: f"New post in r/{v.metadata.get('communityName') or 'community'}",
        link=lambda v: f"/post/{v.related_id}",
    ),
}

_missing = set(NotificationKind) - set(KIND_RENDERERS)
if _missing:
    raise RuntimeError(f"Notification kinds without a renderer: {sorted(k.value for k in _missing)}")


def render_notification(
    kind: str,
    actor: str | None,
    from_user_id: int | None,
    related_id: int | None,
    metadata: dict[str, Any] | None,
) -> tuple[str, str]:
    """
    Render (text, link) for a notification.

    Args:
        kind: NotificationKind value.
        actor: Origin user's display name, if known.
        from_user_id: Origin user id.
        related_id: Related entity id.
        metadata: Free-form metadata stored with the notification.

    Returns:
        Tuple of display text and navigation link.

    Raises:
        ValueError: If kind is not a NotificationKind value.
    """
    renderer = KIND_RENDERERS[NotificationKind(kind)]
    view = NotificationView(
        actor=actor or DEFAULT_ACTOR,
        from_user_id=from_user_id,
        related_id=related_id,
        metadata=metadata or {},
    )
    return renderer.text(view), renderer.link(view)
