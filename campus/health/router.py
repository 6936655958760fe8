"""Health check endpoints."""

from fastapi import APIRouter, Request

from campus.config import get_settings
from campus.core.database import AsyncCassandraConnection


router = APIRouter(prefix="/health", tags=["health"])


@router.get("/live")
async def liveness() -> dict[str, str]:
    """Liveness probe - checks if the application is running."""
    return {"status": "alive"}


@router.get("/ready")
async def readiness(request: Request) -> dict[str, str | bool]:
    """Readiness probe - services wired and the database answering."""
    settings = get_settings()
    services_ready = getattr(request.app.state, "progress_service", None) is not None
    return {
        "status": "ready" if services_ready else "degraded",
        "environment": settings.environment,
        "cassandra": await AsyncCassandraConnection.ping(),
    }


@router.get("")
async def health() -> dict[str, str]:
    """General health check endpoint."""
    settings = get_settings()
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
    }
