"""
Tests for the notifications REST API.
"""

import pytest


@pytest.fixture
def seeded_notifications(client, users, auth_headers, make_chat):
    """Alice sends two messages in a chat with bob: bob gets two notifications."""
    chat_id = make_chat("general", 1, 2)
    for content in ("one", "two"):
        client.post(
            f"/api/chats/{chat_id}/messages", json={"content": content}, headers=auth_headers(1)
        )
    return chat_id


class TestNotificationsApi:
    """Test listing, counting and mutating notifications."""

    def test_list_is_populated(self, client, seeded_notifications, auth_headers):
        response = client.get("/api/notifications", headers=auth_headers(2))

        assert response.status_code == 200
        items = response.json()
        assert len(items) == 2
        assert items[0]["text"] == "alice sent you a message"
        assert items[0]["link"] == "/chats"
        assert items[0]["fromUser"]["username"] == "alice"
        assert items[0]["metadata"]["chatName"] == "general"
        assert items[0]["id"] > items[1]["id"]

    def test_sender_is_not_notified(self, client, seeded_notifications, auth_headers):
        assert client.get("/api/notifications", headers=auth_headers(1)).json() == []

    def test_unread_count_and_mark_read(self, client, seeded_notifications, auth_headers):
        headers = auth_headers(2)
        assert client.get("/api/notifications/unread-count", headers=headers).json() == {"count": 2}

        first = client.get("/api/notifications", headers=headers).json()[0]
        marked = client.put(f"/api/notifications/{first['id']}/read", headers=headers)
        assert marked.json()["read"] is True
        assert client.get("/api/notifications/unread-count", headers=headers).json() == {"count": 1}

        unread = client.get("/api/notifications?unread=true", headers=headers).json()
        assert len(unread) == 1

        client.put("/api/notifications/read-all", headers=headers)
        assert client.get("/api/notifications/unread-count", headers=headers).json() == {"count": 0}

    def test_other_users_cannot_modify(self, client, seeded_notifications, auth_headers):
        target = client.get("/api/notifications", headers=auth_headers(2)).json()[0]

        assert client.put(
            f"/api/notifications/{target['id']}/read", headers=auth_headers(3)
        ).status_code == 403
        assert client.delete(
            f"/api/notifications/{target['id']}", headers=auth_headers(3)
        ).status_code == 403
        assert client.delete("/api/notifications/9999", headers=auth_headers(2)).status_code == 404

    def test_delete(self, client, seeded_notifications, auth_headers):
        headers = auth_headers(2)
        target = client.get("/api/notifications", headers=headers).json()[0]

        assert client.delete(f"/api/notifications/{target['id']}", headers=headers).status_code == 204
        assert len(client.get("/api/notifications", headers=headers).json()) == 1

        assert client.delete("/api/notifications", headers=headers).json() == {"deleted": 1}
        assert client.get("/api/notifications", headers=headers).json() == []

    def test_limit(self, client, seeded_notifications, auth_headers):
        items = client.get("/api/notifications?limit=1", headers=auth_headers(2)).json()
        assert len(items) == 1


class TestHealth:
    def test_health_reports_registry(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["connections"]["active_connections"] == 0

    def test_detailed_health(self, client):
        response = client.get("/api/health/detailed")
        assert response.status_code == 200
        assert response.json()["dependencies"]["database"]["status"] == "healthy"
