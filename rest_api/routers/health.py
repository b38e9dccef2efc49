"""
Health check endpoints.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text

from rest_api.core.dependencies import ServiceContainer, get_services
from shared.config.logging import rest_api_logger as logger
from shared.config.settings import settings


router = APIRouter(prefix="/api/health", tags=["health"])


@router.get("")
def health_check(services: ServiceContainer = Depends(get_services)):
    """Basic health check with room registry statistics."""
    return {
        "status": "healthy",
        "service": "rest-api",
        "environment": settings.environment,
        "connections": services.manager.get_stats(),
    }


@router.get("/detailed")
async def detailed_health_check(services: ServiceContainer = Depends(get_services)):
    """
    Detailed health check that verifies database connectivity.
    Returns 503 when the database is unreachable.
    """
    checks = {
        "service": "rest-api",
        "environment": settings.environment,
        "connections": services.manager.get_stats(),
        "dependencies": {},
    }

    def _ping(db) -> None:
        db.execute(text("SELECT 1"))

    try:
        await services.runner.run(_ping)
        checks["dependencies"]["database"] = {"status": "healthy"}
        checks["status"] = "healthy"
    except Exception as e:
        logger.warning("Database health check failed", error=str(e))
        checks["dependencies"]["database"] = {"status": "unhealthy", "error": str(e)}
        checks["status"] = "degraded"
        return JSONResponse(content=checks, status_code=503)

    return checks
