"""
REST API main application.
Entry point for the FastAPI server hosting both the REST API and the
real-time WebSocket endpoint.
"""

from fastapi import FastAPI
from slowapi.errors import RateLimitExceeded
from sqlalchemy.engine import Engine

from rest_api.core.cors import configure_cors
from rest_api.core.lifespan import lifespan
from rest_api.routers import chats_router, health_router, notifications_router
from shared.config.settings import settings
from shared.infrastructure.correlation import CorrelationIdMiddleware
from shared.infrastructure.db import engine as default_engine
from shared.security.rate_limit import limiter, rate_limit_exceeded_handler
from ws_gateway.main import router as ws_router


def create_app(engine: Engine | None = None) -> FastAPI:
    """
    Build the application.

    Args:
        engine: Database engine; defaults to the one configured by
            DATABASE_URL. Tests pass an in-memory engine.
    """
    app = FastAPI(
        title="Linkboard API",
        description="Chats, notifications and the real-time channel",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.engine = engine if engine is not None else default_engine

    # Rate limiting
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    # Middlewares (last added runs first)
    configure_cors(app)
    app.add_middleware(CorrelationIdMiddleware)

    # Routers
    app.include_router(health_router)
    app.include_router(chats_router)
    app.include_router(notifications_router)
    app.include_router(ws_router)

    return app


# Create FastAPI application
app = create_app()


# =============================================================================
# Development entry point
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "rest_api.main:app",
        host="0.0.0.0",
        port=settings.rest_api_port,
        reload=settings.debug,
    )
