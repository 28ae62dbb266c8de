"""Adapters for the external collaborators the CRM consumes.

- payments: Stripe payment-link transactions aggregated by product
- calendar: business calendar events
- dispatcher: webhooks for mass email and event creation
"""

from filali_crm.integrations.calendar import CalendarClient
from filali_crm.integrations.dispatcher import DispatcherClient, EventRequest
from filali_crm.integrations.payments import CatalogFilters, PaymentsClient

__all__ = [
    "CalendarClient",
    "CatalogFilters",
    "DispatcherClient",
    "EventRequest",
    "PaymentsClient",
]
