"""Health check endpoint for the store and lock backend."""

from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from redis.asyncio import Redis
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from filali_crm.api.deps import get_db, get_redis
from filali_crm.core.config import settings
from filali_crm.core.logging import get_logger
from filali_crm.core.redis import check_redis_health

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["health"])


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    environment: str
    db: str
    redis: str


@router.get("/health", response_model=HealthResponse)
async def health_check(
    db: Annotated[AsyncSession, Depends(get_db)],
    redis_pool: Annotated[Redis, Depends(get_redis)],
) -> HealthResponse:
    """Report database and Redis connectivity.

    Returns:
        HealthResponse with "ok" when both are reachable, "degraded" otherwise.
    """
    try:
        await db.execute(text("SELECT 1"))
        db_status = "connected"
    except Exception as e:
        logger.exception("database_health_check_failed", error=str(e))
        db_status = "disconnected"

    redis_status = "connected" if await check_redis_health(redis_pool) else "disconnected"
    healthy = db_status == "connected" and redis_status == "connected"

    return HealthResponse(
        status="ok" if healthy else "degraded",
        environment=settings.environment,
        db=db_status,
        redis=redis_status,
    )
