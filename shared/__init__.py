"""
Shared module for common utilities across the REST API and the WS Gateway.

STRUCTURE:
- shared.security: Authentication
  - auth.py: JWT signing/verification, bearer token parsing, current_user_context

- shared.infrastructure: Database and request tracing
  - db.py: SQLAlchemy engine, sessions, SessionRunner (async bridge)
  - correlation.py: X-Request-ID middleware and logging filter

- shared.config: Configuration
  - settings.py: Environment config (pydantic-settings)
  - logging.py: Structured logging and audit helpers

- shared.utils: Utilities
  - exceptions.py: HTTP exceptions with auto-logging
  - schemas.py: Shared Pydantic schemas (wire shapes for REST and WebSocket)

IMPORT EXAMPLES:
    from shared.security.auth import verify_jwt, current_user_context
    from shared.infrastructure.db import SessionRunner
    from shared.config.settings import settings
    from shared.utils.exceptions import NotFoundError, ForbiddenError
"""
