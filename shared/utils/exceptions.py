"""
Centralized exceptions for consistent error handling.

REST handlers let these propagate and FastAPI renders {"detail": ...}.
The WebSocket gateway catches them at the event boundary and emits
an `error {message: detail}` frame to the initiating connection.

Usage:
    from shared.utils.exceptions import NotFoundError, ForbiddenError, ValidationError

    raise NotFoundError("Chat not found", chat_id=chat_id)
    raise ForbiddenError("Not a member of this chat", chat_id=chat_id)
    raise ValidationError("Chat ID and message content are required")
"""

from fastapi import HTTPException, status
from typing import Any

from shared.config.logging import get_logger

logger = get_logger(__name__)


class AppException(HTTPException):
    """
    Base exception with automatic logging.

    All custom exceptions should inherit from this class
    to ensure consistent logging and response format.
    """

    def __init__(
        self,
        status_code: int,
        detail: str,
        log_level: str = "warning",
        headers: dict[str, str] | None = None,
        **log_context: Any,
    ):
        # Log the error with context
        log_fn = getattr(logger, log_level, logger.warning)
        log_fn(detail, status_code=status_code, **log_context)

        super().__init__(status_code=status_code, detail=detail, headers=headers)


# =============================================================================
# 400 Bad Request Errors
# =============================================================================


class ValidationError(AppException):
    """
    Input validation error (400).

    Usage:
        raise ValidationError("Message content exceeds 5000 characters")
    """

    def __init__(self, detail: str, **log_context: Any):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
            log_level="warning",
            **log_context,
        )


# =============================================================================
# 401 Authentication Errors
# =============================================================================


class AuthenticationError(AppException):
    """Credential missing, malformed or expired (401)."""

    default_detail = "Authentication failed"

    def __init__(self, detail: str | None = None, **log_context: Any):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail or self.default_detail,
            log_level="info",
            headers={"WWW-Authenticate": "Bearer"},
            **log_context,
        )


class MissingTokenError(AuthenticationError):
    """No credential was presented."""

    default_detail = "No token provided"


class InvalidTokenError(AuthenticationError):
    """Credential failed signature or claim validation."""

    default_detail = "Invalid token"


class TokenExpiredError(AuthenticationError):
    """Credential signature is valid but its exp claim has passed."""

    default_detail = "Token expired"


# =============================================================================
# 403 Forbidden Errors
# =============================================================================


class ForbiddenError(AppException):
    """
    Authorization/permission error (403).

    Usage:
        raise ForbiddenError("Not a member of this chat", chat_id=chat_id)
    """

    def __init__(self, detail: str = "Access denied", **log_context: Any):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail,
            log_level="warning",
            **log_context,
        )


# =============================================================================
# 404 Not Found Errors
# =============================================================================


class NotFoundError(AppException):
    """
    Entity not found error (404).

    Usage:
        raise NotFoundError("Chat not found", chat_id=42)
    """

    def __init__(self, detail: str, **log_context: Any):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail,
            log_level="warning",
            **log_context,
        )


# =============================================================================
# 500 Server Errors
# =============================================================================


class ConfigurationError(AppException):
    """
    Server is missing required configuration (500).

    Distinct from AuthenticationError so operators can tell a broken
    deployment apart from clients presenting bad credentials.
    """

    def __init__(self, detail: str = "Server configuration error", **log_context: Any):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=detail,
            log_level="error",
            **log_context,
        )
