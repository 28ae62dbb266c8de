"""Tests for the mass email endpoint."""

from unittest.mock import AsyncMock

import pytest
from httpx import AsyncClient

from filali_crm.api.deps import get_dispatcher
from filali_crm.integrations.dispatcher import MassEmailReceipt
from filali_crm.main import app


@pytest.fixture
def dispatcher() -> AsyncMock:
    """Dispatcher accepting every batch, installed on the app."""
    mock = AsyncMock()
    mock.send_mass_email.side_effect = lambda items: MassEmailReceipt(
        recipients=len(items),
        message=f"Mass email sent successfully to {len(items)} clients!",
    )
    app.dependency_overrides[get_dispatcher] = lambda: mock
    return mock


@pytest.mark.asyncio
async def test_mass_email_sends_and_logs(
    api_client: AsyncClient, dispatcher: AsyncMock
) -> None:
    """Emailed clients get an activity note after the batch is accepted."""
    amina = (
        await api_client.post(
            "/api/clients", json={"full_name": "Amina", "email": "amina@example.com"}
        )
    ).json()
    bob = (await api_client.post("/api/clients", json={"full_name": "Bob"})).json()

    response = await api_client.post(
        "/api/communications/mass-email",
        json={
            "client_ids": [amina["id"], bob["id"]],
            "template_vars": {"SUBJECT_LINE": "Doors open", "EMAIL_BODY": "Hi {name}"},
        },
    )

    assert response.status_code == 200
    assert response.json() == {
        "sent": 1,
        "skipped_client_ids": [bob["id"]],
        "message": "Mass email sent successfully to 1 clients!",
    }
    items = dispatcher.send_mass_email.await_args.args[0]
    assert items[0]["subject"] == "Doors open"
    refreshed = (await api_client.get(f"/api/clients/{amina['id']}")).json()
    assert refreshed["notes"][-1]["body"] == "Email sent to amina@example.com"


@pytest.mark.asyncio
async def test_mass_email_requires_selection(
    api_client: AsyncClient, dispatcher: AsyncMock
) -> None:
    """An empty selection is rejected."""
    response = await api_client.post("/api/communications/mass-email", json={})

    assert response.status_code == 422
    assert response.json()["errors"] == ["Please select clients to send mass email"]
    dispatcher.send_mass_email.assert_not_called()


@pytest.mark.asyncio
async def test_mass_email_in_flight(
    api_client: AsyncClient, dispatcher: AsyncMock, mock_redis: AsyncMock
) -> None:
    """A batch already being sent is refused with 409."""
    amina = (
        await api_client.post(
            "/api/clients", json={"full_name": "Amina", "email": "amina@example.com"}
        )
    ).json()
    mock_redis.lock.return_value.acquire.return_value = False

    response = await api_client.post(
        "/api/communications/mass-email", json={"client_ids": [amina["id"]]}
    )

    assert response.status_code == 409
    assert response.json() == {"detail": "A mass email request is already in progress"}
