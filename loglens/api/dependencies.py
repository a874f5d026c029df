"""Shared dependency providers for API layer."""
from __future__ import annotations

from litestar import Request

from loglens.services.ingestion import LogIngestionService
from loglens.services.search import SearchExecutor


def provide_search_executor(request: Request) -> SearchExecutor | None:
    """Provide the SearchExecutor from app state.

    Returns None if startup did not create one.
    """
    return getattr(request.app.state, "search_executor", None)


def provide_ingestion_service(request: Request) -> LogIngestionService | None:
    """Provide the LogIngestionService from app state.

    Returns None if the service is not available.
    """
    return getattr(request.app.state, "ingestion_service", None)
