"""
Tests for notification fanout, unread counts and kind rendering.
"""

import pytest
from sqlalchemy import func, select

from rest_api.models import Notification, NotificationKind
from rest_api.services.domain import (
    KIND_RENDERERS,
    NotificationFanout,
    NotificationInbox,
    render_notification,
)
from shared.utils.exceptions import ForbiddenError, NotFoundError


@pytest.fixture
def fanout(runner, manager):
    return NotificationFanout(runner, manager)


@pytest.fixture
def inbox(runner, fanout):
    return NotificationInbox(runner, fanout)


def _stored(db_session) -> int:
    db_session.expire_all()
    return db_session.scalar(select(func.count()).select_from(Notification))


class TestNotify:
    """Test notification creation and live push."""

    @pytest.mark.asyncio
    async def test_self_notification_is_suppressed(self, fanout, users, db_session):
        result = await fanout.notify(1, "message", related_id=5, origin_id=1)

        assert result is None
        assert _stored(db_session) == 0

    @pytest.mark.asyncio
    async def test_offline_recipient_still_gets_record(self, fanout, users, db_session):
        result = await fanout.notify(2, "follow", origin_id=1)

        assert result is not None
        assert result.read is False
        assert result.text == "alice started following you"
        assert result.link == "/profile/1"
        assert _stored(db_session) == 1

    @pytest.mark.asyncio
    async def test_connected_recipient_gets_notification_then_count(
        self, fanout, manager, fake_ws, users
    ):
        ws = fake_ws()
        manager.connect(ws, 2)

        created = await fanout.notify(2, "comment", origin_id=1, metadata={"postId": 42})

        assert [f["event"] for f in ws.frames] == ["new_notification", "notification_count"]
        pushed = ws.frames[0]["data"]
        assert pushed["id"] == created.id
        assert pushed["fromUser"] == {"id": 1, "username": "alice"}
        assert pushed["link"] == "/post/42"
        assert ws.frames[1]["data"] == {"count": 1}

    @pytest.mark.asyncio
    async def test_push_failure_is_swallowed(self, fanout, manager, fake_ws, users, db_session):
        manager.connect(fake_ws(fail=True), 2)

        created = await fanout.notify(2, "message", origin_id=1)

        assert created is not None
        assert _stored(db_session) == 1

    @pytest.mark.asyncio
    async def test_unknown_kind_rejected(self, fanout, users):
        with pytest.raises(ValueError):
            await fanout.notify(2, "poke", origin_id=1)

    @pytest.mark.asyncio
    async def test_persistence_failure_returns_none(self, manager, users):
        class FailingRunner:
            async def run(self, fn):
                raise RuntimeError("database unavailable")

        fanout = NotificationFanout(FailingRunner(), manager)

        assert await fanout.notify(2, "message", origin_id=1) is None


class TestUnreadCount:
    """Unread count is a count query, pushed after each mutation."""

    @pytest.mark.asyncio
    async def test_count_tracks_reads(self, fanout, inbox, users):
        created = [await fanout.notify(2, "message", origin_id=1) for _ in range(3)]
        assert await fanout.unread_count(2) == 3

        await inbox.mark_read(2, created[0].id)
        assert await fanout.unread_count(2) == 2

        await inbox.mark_all_read(2)
        assert await fanout.unread_count(2) == 0

    @pytest.mark.asyncio
    async def test_mutations_push_recomputed_count(self, fanout, inbox, manager, fake_ws, users):
        created = await fanout.notify(2, "message", origin_id=1)
        ws = fake_ws()
        manager.connect(ws, 2)

        await inbox.delete(2, created.id)

        assert ws.events("notification_count")[-1]["data"] == {"count": 0}

    @pytest.mark.asyncio
    async def test_only_recipient_may_modify(self, fanout, inbox, users):
        created = await fanout.notify(2, "message", origin_id=1)

        with pytest.raises(ForbiddenError):
            await inbox.mark_read(3, created.id)
        with pytest.raises(NotFoundError):
            await inbox.delete(2, 9999)

    @pytest.mark.asyncio
    async def test_listing_is_newest_first_and_filters_unread(self, fanout, inbox, users):
        first = await fanout.notify(2, "message", origin_id=1)
        second = await fanout.notify(2, "follow", origin_id=3)
        await inbox.mark_read(2, first.id)

        everything = await inbox.list_for(2)
        unread = await inbox.list_for(2, unread_only=True)

        assert [n.id for n in everything] == [second.id, first.id]
        assert [n.id for n in unread] == [second.id]


class TestKindRendering:
    """Every kind renders through the lookup table."""

    def test_table_covers_every_kind(self):
        assert set(KIND_RENDERERS) == set(NotificationKind)

    @pytest.mark.parametrize(
        "kind,metadata,related_id,expected",
        [
            ("message", {}, 1, ("bob sent you a message", "/chats")),
            (
                "chat_invite",
                {"chatName": "Book club"},
                1,
                ('bob invited you to join "Book club"', "/chats"),
            ),
            ("chat_invite", {}, 1, ('bob invited you to join "a chat"', "/chats")),
            ("comment", {"postId": 9}, 3, ("bob commented on your post", "/post/9")),
            ("vote", {"voteType": "upvote"}, 4, ("bob upvoted your post", "/post/4")),
            ("vote", {"voteType": "downvote"}, 4, ("bob downvoted your post", "/post/4")),
            ("follow", {}, None, ("bob started following you", "/profile/2")),
            (
                "new_post",
                {"communityName": "python"},
                8,
                ("New post in r/python", "/post/8"),
            ),
            ("new_post", {}, 8, ("New post in r/community", "/post/8")),
        ],
    )
    def test_render(self, kind, metadata, related_id, expected):
        assert render_notification(kind, "bob", 2, related_id, metadata) == expected

    def test_unknown_actor_defaults(self):
        text, _ = render_notification("message", None, None, 1, None)
        assert text == "Someone sent you a message"
