"""
Pytest configuration and fixtures for backend tests.
"""

import json
import os
from contextlib import ExitStack

# Must be set before shared.config.settings is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool
from starlette.websockets import WebSocketState

from rest_api.main import create_app
from rest_api.models import Base, User, utcnow
from rest_api.repositories import ChatRepository
from shared.infrastructure.db import SessionRunner, build_session_factory
from shared.security.auth import sign_jwt
from shared.security.rate_limit import limiter
from ws_gateway.connection_manager import ConnectionManager


# =============================================================================
# Database
# =============================================================================


@pytest.fixture(scope="function")
def engine():
    """
    SQLite in-memory engine shared by every session in a test.
    StaticPool keeps the single connection alive across worker threads.
    """
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=eng)
    yield eng
    Base.metadata.drop_all(bind=eng)
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def runner(session_factory):
    return SessionRunner(session_factory)


# =============================================================================
# Seed data
# =============================================================================


@pytest.fixture
def users(db_session):
    """Three users: alice (1), bob (2), carol (3)."""
    seeded = {
        name: User(id=user_id, username=name, email=f"{name}@test.com")
        for user_id, name in ((1, "alice"), (2, "bob"), (3, "carol"))
    }
    db_session.add_all(seeded.values())
    db_session.commit()
    return seeded


@pytest.fixture
def make_chat(db_session):
    """Create a chat owned by the first id with the given members."""

    def _make(name: str, *member_ids: int) -> int:
        repo = ChatRepository(db_session)
        chat = repo.create(name, member_ids[0])
        for user_id in member_ids[1:]:
            repo.add_member(chat.id, user_id)
        db_session.commit()
        return chat.id

    return _make


@pytest.fixture
def make_message(db_session):
    def _make(chat_id: int, sender_id: int, content: str, reply_to_id: int | None = None) -> int:
        message = ChatRepository(db_session).add_message(
            chat_id, sender_id, content, reply_to_id=reply_to_id, created_at=utcnow()
        )
        db_session.commit()
        return message.id

    return _make


# =============================================================================
# Auth
# =============================================================================


@pytest.fixture
def make_token():
    def _make(user_id: int, ttl_seconds: int | None = None) -> str:
        return sign_jwt({"sub": str(user_id)}, ttl_seconds=ttl_seconds)

    return _make


@pytest.fixture
def auth_headers(make_token):
    def _headers(user_id: int) -> dict[str, str]:
        return {"Authorization": f"Bearer {make_token(user_id)}"}

    return _headers


# =============================================================================
# Application
# =============================================================================


@pytest.fixture
def app(engine):
    return create_app(engine=engine)


@pytest.fixture
def client(app):
    """
    Test client with the lifespan running.
    WebSocket sessions and REST calls share the app's event loop.
    """
    limiter.reset()
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def services(client):
    return client.app.state.services


@pytest.fixture
def ws_connect(client, make_token):
    """
    Open an authenticated socket and consume the setup frames.

    Returns the session plus the initial notification count and the
    `connected` payload.
    """
    stack = ExitStack()

    def _connect(user_id: int):
        session = stack.enter_context(
            client.websocket_connect(
                "/ws", subprotocols=["linkboard", f"auth.{make_token(user_id)}"]
            )
        )
        count = session.receive_json()
        assert count["event"] == "notification_count"
        connected = session.receive_json()
        assert connected["event"] == "connected"
        return session, count["data"]["count"], connected["data"]

    yield _connect
    stack.close()


# =============================================================================
# In-process fakes
# =============================================================================


class FakeWebSocket:
    """Records frames sent through ConnectionManager."""

    def __init__(self, fail: bool = False):
        self.client_state = WebSocketState.CONNECTED
        self.application_state = WebSocketState.CONNECTED
        self.fail = fail
        self.frames: list[dict] = []

    async def send_text(self, text: str) -> None:
        if self.fail:
            raise RuntimeError("connection reset")
        self.frames.append(json.loads(text))

    def events(self, name: str | None = None) -> list[dict]:
        if name is None:
            return self.frames
        return [f for f in self.frames if f["event"] == name]


@pytest.fixture
def fake_ws():
    return FakeWebSocket


@pytest.fixture
def manager():
    return ConnectionManager(send_timeout=1.0)
