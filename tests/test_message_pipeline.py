"""
Tests for the send-message pipeline.
"""

import pytest
from sqlalchemy import func, select

from rest_api.models import ChatMessage, Notification
from rest_api.services.domain import MessagePipeline, NotificationFanout
from shared.utils.exceptions import ForbiddenError, NotFoundError, ValidationError


@pytest.fixture
def pipeline(runner, manager):
    return MessagePipeline(runner, manager, NotificationFanout(runner, manager))


def _message_count(db_session) -> int:
    db_session.expire_all()
    return db_session.scalar(select(func.count()).select_from(ChatMessage))


class TestSendMessage:
    """Successful sends."""

    @pytest.mark.asyncio
    async def test_persists_trimmed_message_and_broadcasts(
        self, pipeline, manager, fake_ws, users, make_chat, db_session
    ):
        chat_id = make_chat("general", 1, 2)
        alice, bob = fake_ws(), fake_ws()
        manager.connect(alice, 1)
        manager.connect(bob, 2)
        manager.join_chat(alice, chat_id)
        manager.join_chat(bob, chat_id)

        message = await pipeline.send_message(sender_id=1, chat_id=chat_id, content="  hi  ")

        assert message.content == "hi"
        assert message.sender.username == "alice"
        assert message.reply_to is None
        assert _message_count(db_session) == 1

        for ws in (alice, bob):
            frame = ws.events("new_message")[0]
            assert frame["data"]["id"] == message.id
            assert frame["data"]["chatId"] == chat_id
            assert frame["data"]["sender"]["username"] == "alice"

    @pytest.mark.asyncio
    async def test_string_chat_id_is_accepted(self, pipeline, users, make_chat):
        chat_id = make_chat("general", 1, 2)

        message = await pipeline.send_message(sender_id=1, chat_id=str(chat_id), content="hi")

        assert message.chat_id == chat_id

    @pytest.mark.asyncio
    async def test_notifies_every_other_member(
        self, pipeline, manager, fake_ws, users, make_chat, db_session
    ):
        chat_id = make_chat("trio", 1, 2, 3)
        bob = fake_ws()
        manager.connect(bob, 2)

        message = await pipeline.send_message(sender_id=1, chat_id=chat_id, content="hello")

        rows = db_session.scalars(select(Notification).order_by(Notification.user_id)).all()
        assert [n.user_id for n in rows] == [2, 3]
        assert all(n.kind == "message" for n in rows)
        assert all(n.related_id == message.id for n in rows)
        assert rows[0].meta == {"chatId": chat_id, "chatName": "trio"}

        # Connected recipient gets the notification and a fresh count
        assert bob.events("new_notification")[0]["data"]["text"] == "alice sent you a message"
        assert bob.events("notification_count")[-1]["data"] == {"count": 1}

    @pytest.mark.asyncio
    async def test_reply_carries_preview(self, pipeline, users, make_chat, make_message):
        chat_id = make_chat("general", 1, 2)
        parent_id = make_message(chat_id, 2, "original")

        message = await pipeline.send_message(
            sender_id=1, chat_id=chat_id, content="re", reply_to=parent_id
        )

        assert message.reply_to.id == parent_id
        assert message.reply_to.content == "original"
        assert message.reply_to.sender.username == "bob"

    @pytest.mark.asyncio
    async def test_send_updates_chat_activity(self, pipeline, users, make_chat, runner):
        from rest_api.repositories import ChatRepository

        older = make_chat("older", 1)
        newer = make_chat("newer", 1)

        await pipeline.send_message(sender_id=1, chat_id=older, content="bump")

        ordered = await runner.run(
            lambda db: [c.id for c in ChatRepository(db).chats_for_user(1)]
        )
        assert ordered == [older, newer]


class TestSendMessageRejections:
    """Each precondition failure leaves no trace."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("chat_id,content", [(None, "hi"), (1, ""), (1, "   "), (1, None)])
    async def test_required_fields(self, pipeline, users, make_chat, chat_id, content):
        make_chat("general", 1)
        with pytest.raises(ValidationError) as exc:
            await pipeline.send_message(sender_id=1, chat_id=chat_id, content=content)
        assert exc.value.detail == "Chat ID and message content are required"

    @pytest.mark.asyncio
    async def test_too_long(self, pipeline, users, make_chat):
        chat_id = make_chat("general", 1)
        with pytest.raises(ValidationError) as exc:
            await pipeline.send_message(sender_id=1, chat_id=chat_id, content="x" * 5001)
        assert exc.value.detail == "Message content exceeds 5000 characters"

    @pytest.mark.asyncio
    async def test_membership_checked_before_length(self, pipeline, users, make_chat):
        chat_id = make_chat("private", 2)
        with pytest.raises(ForbiddenError) as exc:
            await pipeline.send_message(sender_id=1, chat_id=chat_id, content="x" * 6000)
        assert exc.value.detail == "Not a member of this chat"

    @pytest.mark.asyncio
    async def test_unknown_chat(self, pipeline, users):
        with pytest.raises(NotFoundError) as exc:
            await pipeline.send_message(sender_id=1, chat_id=404, content="hi")
        assert exc.value.detail == "Chat not found"

    @pytest.mark.asyncio
    async def test_non_member_rejected_without_side_effects(
        self, pipeline, manager, fake_ws, users, make_chat, db_session
    ):
        chat_id = make_chat("private", 2, 3)
        bob = fake_ws()
        manager.connect(bob, 2)
        manager.join_chat(bob, chat_id)

        with pytest.raises(ForbiddenError) as exc:
            await pipeline.send_message(sender_id=1, chat_id=chat_id, content="let me in")

        assert exc.value.detail == "Not a member of this chat"
        assert _message_count(db_session) == 0
        assert bob.frames == []

    @pytest.mark.asyncio
    async def test_reply_to_missing_message(self, pipeline, users, make_chat):
        chat_id = make_chat("general", 1)
        with pytest.raises(NotFoundError) as exc:
            await pipeline.send_message(sender_id=1, chat_id=chat_id, content="re", reply_to=999)
        assert exc.value.detail == "Message to reply to not found"

    @pytest.mark.asyncio
    async def test_reply_across_chats_rejected(
        self, pipeline, users, make_chat, make_message, db_session
    ):
        here = make_chat("here", 1)
        elsewhere = make_chat("elsewhere", 1)
        foreign = make_message(elsewhere, 1, "over there")

        with pytest.raises(ValidationError) as exc:
            await pipeline.send_message(sender_id=1, chat_id=here, content="re", reply_to=foreign)

        assert exc.value.detail == "Cannot reply to message from different chat"
        assert _message_count(db_session) == 1

    @pytest.mark.asyncio
    async def test_notification_failure_does_not_fail_send(
        self, runner, manager, users, make_chat
    ):
        class BrokenNotifier:
            async def notify(self, *args, **kwargs):
                raise RuntimeError("notification store down")

            async def push_unread_count(self, user_id):
                return None

        pipeline = MessagePipeline(runner, manager, BrokenNotifier())
        chat_id = make_chat("general", 1, 2)

        message = await pipeline.send_message(sender_id=1, chat_id=chat_id, content="still sent")

        assert message.content == "still sent"
