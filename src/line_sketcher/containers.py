"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path

from supabase import create_client

from line_sketcher.adapters.replicate_client import HttpxReplicateClient
from line_sketcher.adapters.sqlite_history_repository import SqliteHistoryRepository
from line_sketcher.adapters.supabase_history_repository import (
    SupabaseHistoryRepository,
)
from line_sketcher.config import Settings
from line_sketcher.services.conversions import ConversionService
from line_sketcher.services.credentials import CredentialService
from line_sketcher.services.history import HistoryRepository, HistoryService
from line_sketcher.services.orchestrator import JobOrchestrator
from line_sketcher.services.polling import PollPolicy


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    history_service: HistoryService
    conversion_service: ConversionService
    credential_service: CredentialService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    replicate_client = HttpxReplicateClient.create(
        base_url=resolved_settings.replicate_base_url,
        timeout_seconds=resolved_settings.request_timeout_seconds,
    )
    orchestrator = JobOrchestrator(
        client=replicate_client,
        default_api_token=resolved_settings.replicate_api_token,
        policy=PollPolicy(
            interval_seconds=resolved_settings.poll_interval_seconds,
            max_attempts=resolved_settings.poll_max_attempts,
            status_retries=resolved_settings.status_retries,
        ),
    )
    history_service = HistoryService(build_history_repository(resolved_settings))
    conversion_service = ConversionService(
        orchestrator=orchestrator,
        history_service=history_service,
        max_concurrency=resolved_settings.batch_concurrency,
    )
    credential_service = CredentialService(
        verifier=replicate_client,
        default_api_token=resolved_settings.replicate_api_token,
    )

    async def close_resources() -> None:
        await replicate_client.close()

    return AppContainer(
        settings=resolved_settings,
        history_service=history_service,
        conversion_service=conversion_service,
        credential_service=credential_service,
        close_resources=close_resources,
    )


def build_history_repository(settings: Settings) -> HistoryRepository:
    """Create the history repository for the configured backend."""
    backend = settings.history_backend.strip().lower()
    if backend == "sqlite":
        return SqliteHistoryRepository(Path(settings.history_db_path))
    if backend == "supabase":
        if not settings.supabase_url or not settings.supabase_service_key:
            raise ValueError(
                "supabase_url and supabase_service_key are required "
                "for the supabase history backend"
            )
        client = create_client(settings.supabase_url, settings.supabase_service_key)
        return SupabaseHistoryRepository(client)
    raise ValueError(f"Unknown history backend: {settings.history_backend}")
