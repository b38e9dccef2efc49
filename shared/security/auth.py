"""
Authentication utilities.
Verifies HS256 JWT bearer tokens for both the REST API and the WebSocket gateway.

Token issuance belongs to the identity service; sign_jwt exists so tests and
local tooling can mint tokens that this module accepts.
"""

from __future__ import annotations

import time
import uuid
from typing import Any

import jwt
from fastapi import Depends, Header

from shared.config.settings import settings
from shared.config.logging import get_logger
from shared.utils.exceptions import (
    ConfigurationError,
    InvalidTokenError,
    MissingTokenError,
    TokenExpiredError,
)

logger = get_logger(__name__)


def _secret() -> str:
    """
    Read the verification secret at call time.

    Raises:
        ConfigurationError: If the secret is empty.
    """
    secret = settings.jwt_secret
    if not secret:
        raise ConfigurationError("Server configuration error", reason="JWT_SECRET not set")
    return secret


# =============================================================================
# JWT Functions
# =============================================================================


def sign_jwt(
    payload: dict[str, Any],
    ttl_seconds: int | None = None,
) -> str:
    """
    Sign a JWT token with the given payload.

    Args:
        payload: Claims to include in the token (sub, username).
        ttl_seconds: Token lifetime in seconds. Negative values produce
            an already-expired token.

    Returns:
        Signed JWT token string.
    """
    if ttl_seconds is None:
        ttl_seconds = settings.jwt_access_token_expire_minutes * 60

    now = int(time.time())
    data = {
        **payload,
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
        "iat": now,
        "exp": now + ttl_seconds,
        "jti": str(uuid.uuid4()),
    }
    return jwt.encode(data, _secret(), algorithm="HS256")


def verify_jwt(token: str) -> dict[str, Any]:
    """
    Verify and decode a JWT token.

    Args:
        token: The JWT token string.

    Returns:
        Decoded token claims. "sub" is guaranteed to be an integer string.

    Raises:
        ConfigurationError: If the server has no verification secret.
        TokenExpiredError: If the token's exp claim has passed.
        InvalidTokenError: On any other signature or claim failure.
    """
    secret = _secret()
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=["HS256"],
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
        )
    except jwt.ExpiredSignatureError:
        raise TokenExpiredError()
    except jwt.InvalidTokenError as e:
        # Log the actual error for debugging, but return generic message to client
        logger.warning("JWT validation failed", error=str(e))
        raise InvalidTokenError()

    if "sub" not in payload:
        raise InvalidTokenError(reason="missing subject claim")

    try:
        int(payload["sub"])
    except (ValueError, TypeError):
        raise InvalidTokenError(reason="malformed subject claim")

    return payload


def get_bearer_token(authorization: str | None) -> str:
    """
    Extract bearer token from Authorization header.

    Args:
        authorization: The Authorization header value.

    Returns:
        The token string without "Bearer " prefix.

    Raises:
        MissingTokenError: If header is missing or carries no token.
        InvalidTokenError: If the scheme is not Bearer.
    """
    if not authorization:
        raise MissingTokenError()
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer":
        raise InvalidTokenError("Invalid Authorization header format. Expected: Bearer <token>")
    token = token.strip()
    if not token:
        raise MissingTokenError()
    return token


def current_user_context(
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> dict[str, Any]:
    """
    FastAPI dependency to get the current user context from JWT.

    Usage:
        @router.get("/my")
        async def my_chats(ctx = Depends(current_user_context)):
            user_id = int(ctx["sub"])
    """
    token = get_bearer_token(authorization)
    return verify_jwt(token)


def current_user_id(ctx: dict[str, Any] = Depends(current_user_context)) -> int:
    """FastAPI dependency returning the authenticated user's id."""
    return int(ctx["sub"])
