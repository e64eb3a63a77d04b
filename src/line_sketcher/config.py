"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    replicate_api_token: str | None = None
    replicate_base_url: str = "https://api.replicate.com/v1"
    request_timeout_seconds: float = 30.0
    poll_interval_seconds: float = 5.0
    poll_max_attempts: int = 60
    status_retries: int = 2
    batch_concurrency: int = 1
    history_backend: str = "sqlite"
    history_db_path: str = "line_sketcher.db"
    supabase_url: str | None = None
    supabase_service_key: str | None = None
    log_level: str = "INFO"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def resolve_api_token(explicit: str | None, default: str | None) -> str | None:
    """Pick the caller-supplied token, falling back to the process default."""
    for candidate in (explicit, default):
        if candidate is None:
            continue
        cleaned = candidate.strip()
        if cleaned:
            return cleaned
    return None
