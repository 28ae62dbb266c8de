"""API module exports."""

from filali_crm.api.calendar import router as calendar_router
from filali_crm.api.clients import router as clients_router
from filali_crm.api.communications import router as communications_router
from filali_crm.api.deps import get_db, get_redis
from filali_crm.api.health import router as health_router
from filali_crm.api.payments import router as payments_router

__all__ = [
    "calendar_router",
    "clients_router",
    "communications_router",
    "get_db",
    "get_redis",
    "health_router",
    "payments_router",
]
