"""
Authentication Strategies for WebSocket Gateway.

The session authenticator runs once per connection, before any room is
joined. It extracts a bearer token from the handshake, verifies it, and
resolves the user's display name.

Token sources, first present wins:
    1. auth field: subprotocol offer "auth.<token>"
    2. Authorization: Bearer <token> header
    3. ?token=<token> query parameter
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING

from shared.config.logging import get_logger
from shared.infrastructure.db import SessionRunner
from shared.security.auth import verify_jwt
from shared.utils.exceptions import (
    AuthenticationError,
    ConfigurationError,
    TokenExpiredError,
)
from rest_api.repositories import UserRepository
from ws_gateway.components.core.constants import ErrorMessages, WSCloseCode, WSConstants

if TYPE_CHECKING:
    from fastapi import WebSocket


logger = get_logger(__name__)


# =============================================================================
# Result Types
# =============================================================================


@dataclass(frozen=True, slots=True)
class SessionIdentity:
    """Authenticated user. username is None when the user row is gone."""

    user_id: int
    username: str | None = None


@dataclass(frozen=True, slots=True)
class AuthResult:
    """
    Result of authentication attempt.

    Attributes:
        success: Whether authentication succeeded.
        identity: Resolved identity if successful.
        error_message: Close reason sent to the client if failed.
        close_code: WebSocket close code to use if failed.
        audit_reason: Short reason code for audit logging.
    """

    success: bool
    identity: SessionIdentity | None = None
    error_message: str | None = None
    close_code: int = WSCloseCode.AUTH_FAILED
    audit_reason: str | None = None

    @classmethod
    def ok(cls, identity: SessionIdentity) -> "AuthResult":
        """Create successful authentication result."""
        return cls(success=True, identity=identity)

    @classmethod
    def fail(
        cls,
        message: str,
        close_code: int = WSCloseCode.AUTH_FAILED,
        audit_reason: str = "auth_failed",
    ) -> "AuthResult":
        """Create failed authentication result."""
        return cls(
            success=False,
            error_message=message,
            close_code=close_code,
            audit_reason=audit_reason,
        )

    @classmethod
    def config_error(cls) -> "AuthResult":
        """Server cannot verify tokens at all (distinct from a client failure)."""
        return cls(
            success=False,
            error_message=ErrorMessages.SERVER_CONFIG,
            close_code=WSCloseCode.SERVER_ERROR,
            audit_reason="missing_secret",
        )


# =============================================================================
# Handshake
# =============================================================================


@dataclass(frozen=True, slots=True)
class Handshake:
    """The credential-bearing parts of a WebSocket handshake."""

    auth: str | None = None
    authorization: str | None = None
    query_token: str | None = None
    subprotocols: tuple[str, ...] = ()

    @classmethod
    def from_websocket(cls, websocket: "WebSocket") -> "Handshake":
        offered = tuple(websocket.scope.get("subprotocols") or ())
        prefix = WSConstants.AUTH_SUBPROTOCOL_PREFIX
        auth = next((p[len(prefix):] for p in offered if p.startswith(prefix)), None)
        return cls(
            auth=auth,
            authorization=websocket.headers.get("authorization"),
            query_token=websocket.query_params.get("token"),
            subprotocols=offered,
        )

    @property
    def accept_subprotocol(self) -> str | None:
        """Application subprotocol to echo on accept, if the client offered it."""
        if WSConstants.APP_SUBPROTOCOL in self.subprotocols:
            return WSConstants.APP_SUBPROTOCOL
        return None

    def extract_token(self) -> str | None:
        """Return the first non-empty token in priority order."""
        if self.auth and self.auth.strip():
            return self.auth.strip()

        if self.authorization:
            scheme, _, value = self.authorization.partition(" ")
            if scheme.lower() == "bearer" and value.strip():
                return value.strip()

        if self.query_token and self.query_token.strip():
            return self.query_token.strip()

        return None


# =============================================================================
# Strategies
# =============================================================================


class AuthStrategy(ABC):
    """Base class for handshake authentication strategies."""

    @abstractmethod
    async def authenticate(self, handshake: Handshake) -> AuthResult:
        ...


class SessionAuthenticator(AuthStrategy):
    """
    JWT bearer authentication for the chat socket.

    Usage:
        authenticator = SessionAuthenticator(runner)
        result = await authenticator.authenticate(Handshake.from_websocket(ws))
        if not result.success:
            await ws.close(code=result.close_code, reason=result.error_message)
    """

    def __init__(self, runner: SessionRunner) -> None:
        self._runner = runner

    async def authenticate(self, handshake: Handshake) -> AuthResult:
        token = handshake.extract_token()
        if token is None:
            return AuthResult.fail(ErrorMessages.NO_TOKEN, audit_reason="missing_token")

        try:
            claims = verify_jwt(token)
        except ConfigurationError:
            logger.critical("WebSocket authentication impossible: JWT secret is not configured")
            return AuthResult.config_error()
        except TokenExpiredError:
            return AuthResult.fail(ErrorMessages.TOKEN_EXPIRED, audit_reason="token_expired")
        except AuthenticationError:
            return AuthResult.fail(ErrorMessages.INVALID_TOKEN, audit_reason="invalid_token")

        user_id = int(claims["sub"])
        username = await self._lookup_username(user_id)
        return AuthResult.ok(SessionIdentity(user_id=user_id, username=username))

    async def _lookup_username(self, user_id: int) -> str | None:
        """
        Resolve the display name. A missing user or a failed lookup yields
        None; the session proceeds with the id only.
        """
        try:
            username = await self._runner.run(lambda db: UserRepository(db).username(user_id))
        except Exception:
            logger.warning("Username lookup failed", user_id=user_id, exc_info=True)
            return None
        if username is None:
            logger.info("Authenticated user has no user record", user_id=user_id)
        return username
