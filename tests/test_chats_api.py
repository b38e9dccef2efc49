"""
Tests for the chats REST API.
"""

from typing import get_args

from rest_api.models import InviteStatus, Notification
from shared.utils import schemas


class TestAuthRequired:
    def test_missing_token(self, client):
        response = client.get("/api/chats/my")
        assert response.status_code == 401
        assert response.json()["detail"] == "No token provided"

    def test_expired_token(self, client, make_token):
        token = make_token(1, ttl_seconds=-5)
        response = client.get("/api/chats/my", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401
        assert response.json()["detail"] == "Token expired"


class TestCreateChat:
    """Test chat creation and invites."""

    def test_create_chat_with_invitees(self, client, users, auth_headers, db_session):
        response = client.post(
            "/api/chats",
            json={"name": "Book club", "invitees": [2, 1], "inviteUsernames": ["CAROL", "nobody"]},
            headers=auth_headers(1),
        )

        assert response.status_code == 201
        chat = response.json()
        assert chat["name"] == "Book club"
        assert chat["creator"] == {"id": 1, "username": "alice"}
        assert [m["id"] for m in chat["members"]] == [1]

        # Invitees are notified, the creator is never invited
        kinds = {n.user_id: n.kind for n in db_session.query(Notification).all()}
        assert kinds == {2: "chat_invite", 3: "chat_invite"}

        incoming = client.get("/api/chats/invites", headers=auth_headers(2)).json()
        assert len(incoming) == 1
        assert incoming[0]["chat"] == {"id": chat["id"], "name": "Book club"}
        assert incoming[0]["fromUser"]["username"] == "alice"

    def test_create_chat_requires_name(self, client, users, auth_headers):
        response = client.post("/api/chats", json={"name": ""}, headers=auth_headers(1))
        assert response.status_code == 422

    def test_invite_skips_members_and_pending(self, client, users, auth_headers, make_chat):
        chat_id = make_chat("general", 1, 2)

        first = client.post(
            f"/api/chats/{chat_id}/invite", json={"userIds": [2, 3]}, headers=auth_headers(1)
        )
        assert first.status_code == 201
        assert [i["toUser"]["id"] for i in first.json()] == [3]

        again = client.post(
            f"/api/chats/{chat_id}/invite", json={"userIds": [2, 3]}, headers=auth_headers(1)
        )
        assert again.status_code == 400
        assert again.json()["detail"] == "No valid invitees provided"

    def test_non_member_cannot_invite(self, client, users, auth_headers, make_chat):
        chat_id = make_chat("private", 2)
        response = client.post(
            f"/api/chats/{chat_id}/invite", json={"userIds": [3]}, headers=auth_headers(1)
        )
        assert response.status_code == 403


class TestInviteResponses:
    """Accept and reject flows."""

    def _invite(self, client, auth_headers, make_chat) -> tuple[int, int]:
        chat_id = make_chat("general", 1)
        invites = client.post(
            f"/api/chats/{chat_id}/invite", json={"userIds": [2]}, headers=auth_headers(1)
        ).json()
        return chat_id, invites[0]["id"]

    def test_accept_adds_member(self, client, users, auth_headers, make_chat):
        chat_id, invite_id = self._invite(client, auth_headers, make_chat)

        response = client.post(f"/api/chats/invites/{invite_id}/accept", headers=auth_headers(2))

        assert response.status_code == 200
        assert [m["id"] for m in response.json()["members"]] == [1, 2]
        mine = client.get("/api/chats/my", headers=auth_headers(2)).json()
        assert [c["id"] for c in mine] == [chat_id]

    def test_accept_twice_is_rejected(self, client, users, auth_headers, make_chat):
        _, invite_id = self._invite(client, auth_headers, make_chat)
        client.post(f"/api/chats/invites/{invite_id}/accept", headers=auth_headers(2))

        response = client.post(f"/api/chats/invites/{invite_id}/accept", headers=auth_headers(2))

        assert response.status_code == 400
        assert response.json()["detail"] == "Invite already processed"

    def test_only_invitee_may_respond(self, client, users, auth_headers, make_chat):
        _, invite_id = self._invite(client, auth_headers, make_chat)

        response = client.post(f"/api/chats/invites/{invite_id}/reject", headers=auth_headers(3))

        assert response.status_code == 403

    def test_reject(self, client, users, auth_headers, make_chat):
        _, invite_id = self._invite(client, auth_headers, make_chat)

        response = client.post(f"/api/chats/invites/{invite_id}/reject", headers=auth_headers(2))

        assert response.status_code == 200
        assert response.json()["status"] == "rejected"
        assert client.get("/api/chats/invites", headers=auth_headers(2)).json() == []

    def test_unknown_invite(self, client, users, auth_headers):
        response = client.post("/api/chats/invites/999/accept", headers=auth_headers(2))
        assert response.status_code == 404

    def test_invite_states_are_reachable(self):
        reachable = {InviteStatus.PENDING, InviteStatus.ACCEPTED, InviteStatus.REJECTED}
        assert set(get_args(schemas.InviteStatus)) == reachable


class TestMessages:
    """REST message fallback and history."""

    def test_send_and_list(self, client, users, auth_headers, make_chat):
        chat_id = make_chat("general", 1, 2)

        sent = client.post(
            f"/api/chats/{chat_id}/messages", json={"content": " hello "}, headers=auth_headers(1)
        )
        assert sent.status_code == 201
        assert sent.json()["content"] == "hello"

        reply = client.post(
            f"/api/chats/{chat_id}/messages",
            json={"content": "hi back", "replyTo": sent.json()["id"]},
            headers=auth_headers(2),
        )
        assert reply.json()["replyTo"]["content"] == "hello"

        history = client.get(f"/api/chats/{chat_id}/messages", headers=auth_headers(2)).json()
        assert [m["content"] for m in history] == ["hello", "hi back"]

    def test_history_limit_keeps_newest(self, client, users, auth_headers, make_chat, make_message):
        chat_id = make_chat("general", 1)
        for i in range(5):
            make_message(chat_id, 1, f"m{i}")

        history = client.get(
            f"/api/chats/{chat_id}/messages?limit=2", headers=auth_headers(1)
        ).json()

        assert [m["content"] for m in history] == ["m3", "m4"]

    def test_send_validation_matches_socket_path(self, client, users, auth_headers, make_chat):
        chat_id = make_chat("general", 1)

        blank = client.post(
            f"/api/chats/{chat_id}/messages", json={"content": "  "}, headers=auth_headers(1)
        )
        assert blank.status_code == 400
        assert blank.json()["detail"] == "Chat ID and message content are required"

        too_long = client.post(
            f"/api/chats/{chat_id}/messages", json={"content": "x" * 5001}, headers=auth_headers(1)
        )
        assert too_long.status_code == 400

    def test_send_to_foreign_chat(self, client, users, auth_headers, make_chat):
        chat_id = make_chat("private", 2)
        response = client.post(
            f"/api/chats/{chat_id}/messages", json={"content": "hi"}, headers=auth_headers(1)
        )
        assert response.status_code == 403
        assert response.json()["detail"] == "Not a member of this chat"

    def test_send_to_missing_chat(self, client, users, auth_headers):
        response = client.post(
            "/api/chats/404/messages", json={"content": "hi"}, headers=auth_headers(1)
        )
        assert response.status_code == 404

    def test_history_requires_membership(self, client, users, auth_headers, make_chat):
        chat_id = make_chat("private", 2)
        response = client.get(f"/api/chats/{chat_id}/messages", headers=auth_headers(1))
        assert response.status_code == 403


class TestLeave:
    def test_leave_removes_membership(self, client, users, auth_headers, make_chat):
        chat_id = make_chat("general", 1, 2)

        response = client.post(f"/api/chats/{chat_id}/leave", headers=auth_headers(2))

        assert response.status_code == 204
        assert client.get("/api/chats/my", headers=auth_headers(2)).json() == []
        denied = client.post(
            f"/api/chats/{chat_id}/messages", json={"content": "hi"}, headers=auth_headers(2)
        )
        assert denied.status_code == 403

    def test_my_chats_ordered_by_activity(self, client, users, auth_headers, make_chat):
        older = make_chat("older", 1)
        newer = make_chat("newer", 1)

        client.post(f"/api/chats/{older}/messages", json={"content": "bump"}, headers=auth_headers(1))

        mine = client.get("/api/chats/my", headers=auth_headers(1)).json()
        assert [c["id"] for c in mine] == [older, newer]
