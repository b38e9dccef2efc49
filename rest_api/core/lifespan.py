"""
Application lifespan handler.
Manages startup and shutdown events for the FastAPI application.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from shared.config.settings import settings
from shared.config.logging import setup_logging, rest_api_logger as logger
from rest_api.models import Base
from rest_api.core.dependencies import ServiceContainer


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.
    Runs on startup and shutdown.

    The engine is read from `app.state.engine`, set by create_app().
    """
    # Initialize logging
    setup_logging()

    # Validate production secrets before startup
    secret_errors = settings.validate_production_secrets()
    if secret_errors:
        for error in secret_errors:
            logger.error("Configuration error", error=error)
        if settings.environment == "production":
            raise RuntimeError(
                f"Production configuration errors: {'; '.join(secret_errors)}. "
                "Server will not start with insecure configuration."
            )
        else:
            logger.warning(
                "Running with insecure defaults (acceptable for development only)"
            )

    # Startup
    logger.info("Starting REST API", port=settings.rest_api_port, env=settings.environment)

    engine = app.state.engine
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created/verified")

    app.state.services = ServiceContainer.build(engine)
    logger.info("Services initialized")

    yield

    # Shutdown
    logger.info("Shutting down REST API")
    stats = app.state.services.manager.get_stats()
    logger.info(
        "Connection registry at shutdown",
        active_connections=stats["active_connections"],
        total_connects=stats["total_connects"],
    )
