"""
Authentication components.

Handshake token extraction and JWT session authentication.
"""

from ws_gateway.components.auth.strategies import (
    AuthResult,
    AuthStrategy,
    Handshake,
    SessionAuthenticator,
    SessionIdentity,
)

__all__ = [
    "AuthResult",
    "AuthStrategy",
    "Handshake",
    "SessionAuthenticator",
    "SessionIdentity",
]
