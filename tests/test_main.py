"""Tests for application wiring: routes, CORS, and request ids."""

from fastapi.testclient import TestClient

from filali_crm.main import app


def test_routes_registered() -> None:
    """Every public endpoint is mounted."""
    paths = {route.path for route in app.routes}

    assert {
        "/api/health",
        "/api/clients",
        "/api/clients/stats",
        "/api/clients/search",
        "/api/clients/{client_id}",
        "/api/clients/{client_id}/notes",
        "/api/clients/{client_id}/contact-log",
        "/api/clients/{client_id}/dossier",
        "/api/calendar/events",
        "/api/payments/summary",
        "/api/payments/revenue",
        "/api/communications/mass-email",
    } <= paths


def test_cors_preflight_allows_frontend(client: TestClient) -> None:
    """The local frontend origin passes CORS preflight."""
    response = client.options(
        "/api/clients",
        headers={
            "Origin": "http://localhost:5173",
            "Access-Control-Request-Method": "POST",
        },
    )

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "http://localhost:5173"


def test_request_id_echoed(client: TestClient) -> None:
    """A caller-supplied X-Request-ID comes back on the response."""
    response = client.options(
        "/api/clients",
        headers={
            "Origin": "http://localhost:5173",
            "Access-Control-Request-Method": "GET",
            "X-Request-ID": "req-123",
        },
    )

    assert response.headers["X-Request-ID"] == "req-123"
