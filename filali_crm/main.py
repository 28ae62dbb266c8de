"""FastAPI application entry point with lifespan management."""

from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from filali_crm.api.calendar import router as calendar_router
from filali_crm.api.clients import router as clients_router
from filali_crm.api.communications import router as communications_router
from filali_crm.api.errors import register_exception_handlers
from filali_crm.api.health import router as health_router
from filali_crm.api.middleware import RequestContextMiddleware
from filali_crm.api.payments import router as payments_router
from filali_crm.core.config import settings
from filali_crm.core.database import create_engine, create_session_factory
from filali_crm.core.http import create_http_client
from filali_crm.core.logging import configure_logging, get_logger
from filali_crm.core.redis import create_redis_pool
from filali_crm.core.sentry import init_sentry

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application lifecycle resources.

    Startup:
        - Configure structured logging
        - Initialize Sentry error tracking
        - Create database engine and session factory
        - Establish Redis connection pool
        - Open the shared collaborator HTTP client

    Shutdown:
        - Close the HTTP client
        - Close Redis connections
        - Dispose database engine
    """
    configure_logging()
    logger.info("Starting application", environment=settings.environment)

    init_sentry()

    app.state.db_engine = create_engine()
    app.state.async_session = create_session_factory(app.state.db_engine)
    logger.info("Database engine created")

    app.state.redis = await create_redis_pool()
    logger.info("Redis pool created")

    app.state.http = create_http_client()
    logger.info("HTTP client created")

    yield

    logger.info("Shutting down application")

    await app.state.http.aclose()
    logger.info("HTTP client closed")

    await app.state.redis.aclose()
    logger.info("Redis pool closed")

    await app.state.db_engine.dispose()
    logger.info("Database engine disposed")


app = FastAPI(
    title="FILALI EMPIRE CRM",
    description="Client records, activity timelines, and client dossiers",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(RequestContextMiddleware)

register_exception_handlers(app)

app.include_router(health_router)
app.include_router(clients_router)
app.include_router(calendar_router)
app.include_router(payments_router)
app.include_router(communications_router)
