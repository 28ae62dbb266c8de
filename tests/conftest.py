"""Pytest configuration and shared fixtures for tests."""

import os

os.environ.setdefault("DATABASE_URL", "postgresql+asyncpg://user@localhost:5432/testdb")

from collections.abc import AsyncGenerator  # noqa: E402
from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from filali_crm.api.deps import get_db  # noqa: E402
from filali_crm.main import app  # noqa: E402
from filali_crm.models.client import Client  # noqa: E402


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    """Use asyncio backend for async tests.

    Returns:
        Backend name string.
    """
    return "asyncio"


@pytest.fixture
def mock_db_session() -> AsyncMock:
    """Create a mock database session.

    Returns:
        AsyncMock configured to simulate database session.
    """
    session = AsyncMock()
    session.execute.return_value = MagicMock()
    return session


@pytest.fixture
def mock_db_session_failing() -> AsyncMock:
    """Create a mock database session that fails on execute.

    Returns:
        AsyncMock configured to raise exception on execute.
    """
    session = AsyncMock()
    session.execute.side_effect = Exception("Database connection failed")
    return session


@pytest.fixture
def mock_redis() -> AsyncMock:
    """Create a mock Redis connection that succeeds.

    `lock(...)` returns a lock that acquires, so submission guards let calls
    through. Tests reach it as `mock_redis.lock.return_value`.

    Returns:
        AsyncMock configured to simulate healthy Redis.
    """
    redis_mock = AsyncMock()
    redis_mock.ping.return_value = True
    lock = AsyncMock()
    lock.acquire.return_value = True
    redis_mock.lock = MagicMock(return_value=lock)
    return redis_mock


@pytest.fixture
def mock_redis_failing() -> AsyncMock:
    """Create a mock Redis connection that fails.

    Returns:
        AsyncMock configured to raise exception on ping.
    """
    redis_mock = AsyncMock()
    redis_mock.ping.side_effect = Exception("Redis connection refused")
    return redis_mock


@pytest_asyncio.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Create sqlite-backed session factory with the clients table."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Client.__table__.create)

    factory = async_sessionmaker(engine, expire_on_commit=False)
    app.state.async_session = factory
    try:
        yield factory
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Single session for service-level tests."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def api_client(
    session_factory: async_sessionmaker[AsyncSession],
    mock_redis: AsyncMock,
) -> AsyncGenerator[AsyncClient, None]:
    """Create API client with DB dependency override and mocked Redis."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.state.redis = mock_redis
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def client() -> TestClient:
    """Create a test client for API testing.

    Returns:
        FastAPI TestClient instance.
    """
    return TestClient(app)
