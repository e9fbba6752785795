"""Health check endpoints."""

from fastapi import APIRouter, status
from pydantic import BaseModel

from app.config import settings
from app.core.redis_client import check_redis_connection
from app.database import check_database_connection

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    version: str
    environment: str


class DetailedHealthResponse(HealthResponse):
    """Health check response including backing services."""

    database: str
    cache: str


def _label(healthy: bool) -> str:
    return "healthy" if healthy else "unhealthy"


@router.get("/health", response_model=HealthResponse, status_code=status.HTTP_200_OK)
async def health_check() -> HealthResponse:
    """Liveness check."""
    return HealthResponse(
        status="healthy",
        version=settings.app_version,
        environment=settings.environment,
    )


@router.get(
    "/health/detailed",
    response_model=DetailedHealthResponse,
    status_code=status.HTTP_200_OK,
)
async def detailed_health_check() -> DetailedHealthResponse:
    """
    Readiness check.

    The cache is optional for serving requests, so only the database decides
    between ``healthy`` and ``degraded``.
    """
    db_healthy = await check_database_connection()
    cache_healthy = await check_redis_connection()

    return DetailedHealthResponse(
        status="healthy" if db_healthy else "degraded",
        version=settings.app_version,
        environment=settings.environment,
        database=_label(db_healthy),
        cache=_label(cache_healthy),
    )


@router.get("/ping", status_code=status.HTTP_200_OK)
async def ping() -> dict[str, str]:
    """Simple ping."""
    return {"message": "pong"}
