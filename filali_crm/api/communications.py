"""Outbound communication endpoints."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from redis.asyncio import Redis

from filali_crm.api.deps import get_client_service, get_dispatcher, get_redis
from filali_crm.crm.mass_email import MassEmailResult, TemplateVars, send_mass_email
from filali_crm.crm.service import ClientService
from filali_crm.integrations.dispatcher import DispatcherClient

router = APIRouter(prefix="/api/communications", tags=["communications"])


class MassEmailRequest(BaseModel):
    client_ids: list[str] = Field(default_factory=list)
    template_vars: TemplateVars = Field(default_factory=TemplateVars)


@router.post("/mass-email", response_model=MassEmailResult)
async def mass_email(
    payload: MassEmailRequest,
    service: ClientService = Depends(get_client_service),
    dispatcher: DispatcherClient = Depends(get_dispatcher),
    redis_pool: Redis = Depends(get_redis),
) -> MassEmailResult:
    """Send one branded email to each selected client and log the contact."""
    return await send_mass_email(
        service,
        dispatcher,
        redis_pool,
        payload.client_ids,
        payload.template_vars,
    )
