"""SQLAlchemy models for the FILALI EMPIRE CRM."""

from filali_crm.models.base import Base
from filali_crm.models.client import Client

__all__ = [
    "Base",
    "Client",
]
