"""Shared outbound HTTP client for collaborator adapters."""

import httpx

from filali_crm.core.config import settings


def create_http_client(**client_options: object) -> httpx.AsyncClient:
    """Create the async HTTP client shared by all collaborator adapters.

    Usage in lifespan:
        app.state.http = create_http_client()
        yield
        await app.state.http.aclose()

    Args:
        **client_options: Overrides passed to httpx.AsyncClient (tests pass
            a MockTransport here).

    Returns:
        Configured httpx.AsyncClient.
    """
    options: dict[str, object] = {
        "timeout": httpx.Timeout(settings.http_timeout_seconds),
        "headers": {"Accept": "application/json"},
        "follow_redirects": True,
    }
    options.update(client_options)
    return httpx.AsyncClient(**options)
