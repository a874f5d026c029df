"""Application lifecycle hooks for startup and shutdown."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from loglens.config.settings import get_settings
from loglens.services.ingestion import LogIngestionService
from loglens.services.search import SearchBackendClient, SearchExecutor

if TYPE_CHECKING:
    from litestar import Litestar

logger = logging.getLogger(__name__)


async def on_startup(app: "Litestar") -> None:
    """Build the backend client, search executor and ingestion service.

    Nothing here talks to the backend yet, so the API starts even when the
    search backend is down; failures surface per request or per batch.
    """
    settings = get_settings()

    client = SearchBackendClient.from_settings(settings.search)
    search_executor = SearchExecutor(
        sink=client,
        index=settings.search.index,
        enabled=settings.search.enabled and settings.search.search_enabled,
    )
    ingestion_service = LogIngestionService.from_settings(settings, sink=client)

    if not settings.search.enabled:
        logger.warning("Search backend disabled (SEARCH_ENABLED=false): search and ingestion are off.")

    # Store in app state for shutdown and API access
    app.state.search_client = client
    app.state.search_executor = search_executor
    app.state.ingestion_service = ingestion_service

    await ingestion_service.start()


async def on_shutdown(app: "Litestar") -> None:
    """Gracefully stop background services and clean up resources."""
    # Stop ingestion service first so no batch is in flight when the session closes
    ingestion_service: LogIngestionService | None = getattr(
        app.state, "ingestion_service", None
    )
    if ingestion_service:
        await ingestion_service.stop(timeout=5.0)

    client: SearchBackendClient | None = getattr(app.state, "search_client", None)
    if client:
        await client.close()
