"""Health check endpoints."""
import logging

from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    storage: str


@router.get("/ping", response_class=PlainTextResponse)
async def ping() -> str:
    """Liveness check."""
    return "pong"


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """Check application and storage backend health."""
    engine = getattr(request.app.state, "engine", None)
    redis_client = getattr(request.app.state, "redis", None)

    storage_status = "healthy"
    try:
        if engine is not None:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        if redis_client is not None:
            await redis_client.ping()
    except (SQLAlchemyError, RedisError, OSError):
        logger.exception("Storage health check failed")
        storage_status = "unhealthy"

    return HealthResponse(
        status="healthy" if storage_status == "healthy" else "degraded",
        storage=storage_status,
    )
