"""Application configuration using Pydantic Settings."""

import json
from collections.abc import Iterable
from pathlib import Path
from typing import Annotated

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


DEFAULT_CORS_ORIGINS = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Client store
    database_url: str
    """PostgreSQL connection URL (asyncpg driver)."""

    # Redis
    redis_url: str = "redis://localhost:6379/0"
    """Redis connection URL for in-flight submission guards."""

    submission_lock_ttl_seconds: int = 60
    """How long a mutating action stays locked if its holder never releases."""

    # Error Tracking
    sentry_dsn: str | None = None
    """Sentry DSN for error tracking. Optional."""

    # Collaborators
    transactions_api_url: str = (
        "https://nawfalfilalicrm.vercel.app/api/transactions-by-link.js"
    )
    """Serverless endpoint aggregating Stripe payment-link transactions."""

    calendar_api_url: str = "https://nawfalfilalicrm.vercel.app/api/calendar.js"
    """Serverless endpoint returning calendar events."""

    mass_email_webhook_url: str = (
        "https://n8n-up8s.onrender.com/webhook/665443ff-5859-4d7b-a3a5-1f700df5965d"
    )
    """Webhook receiving the batched mass-email payload."""

    event_webhook_url: str = (
        "https://n8n-up8s.onrender.com/webhook/ad873246-517b-4a11-92a6-75710399b123"
    )
    """Webhook creating calendar events."""

    calendar_timezone: str = "Eastern Standard Time"
    """Time zone name sent to the calendar collaborator."""

    http_timeout_seconds: float = 30.0
    """Timeout applied to every outbound collaborator request."""

    # Environment
    environment: str = "development"
    """Current environment (development, staging, production)."""

    debug: bool = False
    """Enable debug mode."""

    log_format: str | None = None
    """Logging format override (json or console). Defaults by environment."""

    # NoDecode prevents pydantic-settings from forcing JSON parsing at the
    # env-source layer, so we can accept either JSON arrays or CSV strings.
    cors_origins: Annotated[list[str], NoDecode] = DEFAULT_CORS_ORIGINS
    """Origins allowed to call the API from a browser."""

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, value: object) -> list[str]:
        """Parse CORS origins from JSON array, CSV, or list."""
        if isinstance(value, str):
            text = value.strip()
            if not text:
                return DEFAULT_CORS_ORIGINS.copy()

            try:
                decoded = json.loads(text)
            except json.JSONDecodeError:
                decoded = None

            if isinstance(decoded, list):
                return _normalize_origins(decoded)
            if isinstance(decoded, str):
                text = decoded
            elif decoded is not None:
                raise ValueError(
                    "CORS_ORIGINS must be a JSON array or comma-separated string."
                )

            # Fallback: comma-separated values
            parsed = [item.strip() for item in text.split(",")]
            return _normalize_origins(parsed)

        if isinstance(value, (list, tuple, set)):
            return _normalize_origins(value)

        raise ValueError("CORS_ORIGINS must be a string, list, tuple, or set.")


def _normalize_origins(values: Iterable[object]) -> list[str]:
    """Normalize and dedupe origins while preserving declaration order."""
    normalized: list[str] = []
    seen: set[str] = set()
    for raw_item in values:
        item = str(raw_item).strip().strip("'").strip('"').rstrip("/")
        if not item:
            continue
        item = item.lower()
        if item in seen:
            continue
        normalized.append(item)
        seen.add(item)

    if not normalized:
        return DEFAULT_CORS_ORIGINS.copy()
    return normalized


try:
    settings = Settings()
except Exception as exc:
    env_file = Path(".env")
    root_error = str(exc)
    suggestions = [
        "Ensure DATABASE_URL is set.",
        "Allowed values for CORS_ORIGINS are:",
        '  1) ["http://localhost:5173","https://crm.filaliempire.com"]',
        "  2) http://localhost:5173,https://crm.filaliempire.com",
    ]

    raise RuntimeError(
        "Failed to initialize application settings. "
        f"Check environment variables in {env_file.resolve() if env_file.exists() else '.env'}.\n"
        + f"Error: {root_error}\n"
        + "\n".join(suggestions)
    ) from exc
