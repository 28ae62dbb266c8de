"""FastAPI dependency injection for the store, Redis, and collaborators."""

from collections.abc import AsyncGenerator
from typing import TYPE_CHECKING

import httpx
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from filali_crm.crm.service import ClientService
from filali_crm.integrations.calendar import CalendarClient
from filali_crm.integrations.dispatcher import DispatcherClient
from filali_crm.integrations.payments import PaymentsClient

if TYPE_CHECKING:
    import redis.asyncio as redis


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Yield a database session from the app's session factory.

    Args:
        request: FastAPI request containing app state.

    Yields:
        AsyncSession for database operations with automatic commit/rollback.
    """
    async with request.app.state.async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_redis(request: Request) -> "redis.Redis":
    """Get Redis connection pool from app state.

    Args:
        request: FastAPI request containing app state.

    Returns:
        Redis connection pool for submission locks.
    """
    return request.app.state.redis


async def get_http(request: Request) -> httpx.AsyncClient:
    """Get the shared outbound HTTP client from app state."""
    return request.app.state.http


async def get_client_service(db: AsyncSession = Depends(get_db)) -> ClientService:
    return ClientService(db)


async def get_payments(http: httpx.AsyncClient = Depends(get_http)) -> PaymentsClient:
    return PaymentsClient(http)


async def get_calendar(http: httpx.AsyncClient = Depends(get_http)) -> CalendarClient:
    return CalendarClient(http)


async def get_dispatcher(http: httpx.AsyncClient = Depends(get_http)) -> DispatcherClient:
    return DispatcherClient(http)
