"""Analytics API endpoints for log search and ingestion statistics."""

from __future__ import annotations

from typing import Any

from litestar import Controller, get, post
from litestar.di import Provide
from litestar.exceptions import (
    ClientException,
    HTTPException,
    ServiceUnavailableException,
)
from litestar.status_codes import HTTP_200_OK, HTTP_502_BAD_GATEWAY

from loglens.domain.search.dtos import LogSearchRequest
from loglens.services.ingestion import LogIngestionService
from loglens.services.query import QueryError
from loglens.services.search import SearchBackendError, SearchDisabledError, SearchExecutor

from loglens.api.dependencies import provide_ingestion_service, provide_search_executor


class AnalyticsController(Controller):
    """Log analytics endpoints."""

    path = "/api/admin/analytics"
    tags = ["Analytics"]

    dependencies = {
        "search_executor": Provide(provide_search_executor, sync_to_thread=False),
        "ingestion_service": Provide(provide_ingestion_service, sync_to_thread=False),
    }

    @post("/search", status_code=HTTP_200_OK, description="Search logs with the field-query language.")
    async def search(
        self,
        data: LogSearchRequest,
        search_executor: SearchExecutor | None,
    ) -> dict[str, Any]:
        """Run a log search.

        Body: ``{"query": "level == ERROR", "from": 0, "size": 20}``.
        Invalid bodies and malformed queries are 400, disabled search 503,
        backend failures 502.
        """
        if search_executor is None:
            raise ServiceUnavailableException(detail="Analytics search is not available")

        try:
            response = await search_executor.search(data)
        except QueryError as e:
            raise ClientException(detail=str(e)) from e
        except SearchDisabledError as e:
            raise ServiceUnavailableException(detail=str(e)) from e
        except SearchBackendError as e:
            raise HTTPException(
                status_code=HTTP_502_BAD_GATEWAY,
                detail=f"Failed to execute search against the search backend: {e}",
            ) from e

        return response.to_dict()

    @get("/stats", description="Get log ingestion statistics.")
    async def stats(self, ingestion_service: LogIngestionService | None) -> dict[str, Any]:
        """Get ingestion statistics.

        Returns zeros if the ingestion service is not available.
        """
        if ingestion_service is None:
            return {
                "ticks": 0,
                "parsed_lines": 0,
                "skipped_lines": 0,
                "documents_shipped": 0,
                "documents_dropped": 0,
                "failed_batches": 0,
                "is_running": False,
            }

        return {
            "ticks": ingestion_service.ticks,
            "parsed_lines": ingestion_service.parsed_lines,
            "skipped_lines": ingestion_service.skipped_lines,
            "documents_shipped": ingestion_service.documents_shipped,
            "documents_dropped": ingestion_service.documents_dropped,
            "failed_batches": ingestion_service.failed_batches,
            "is_running": ingestion_service.is_running,
        }
