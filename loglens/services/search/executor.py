"""Search execution - compile a log query, run it, and map the hits."""
from __future__ import annotations

import logging
from typing import Any

from loglens.domain.search.dtos import LogSearchHit, LogSearchRequest, LogSearchResponse
from loglens.services.query import LogQueryParser

from .client import SearchSink
from .errors import SearchBackendError, SearchDisabledError

logger = logging.getLogger(__name__)

HIGHLIGHT_FIELDS = ("message", "raw")


def build_search_payload(query_string: str, from_: int, size: int) -> dict[str, Any]:
    """Build the backend search body for a compiled query.

    Untyped terms are AND-ed; hits are sorted by score then newest first.
    """
    return {
        "query": {
            "query_string": {
                "query": query_string,
                "default_operator": "AND",
            }
        },
        "from": from_,
        "size": size,
        "sort": [
            {"_score": "desc"},
            {"timestamp": "desc"},
        ],
        "highlight": {"fields": {name: {} for name in HIGHLIGHT_FIELDS}},
    }


def _first_snippet(highlight: Any) -> str | None:
    """Pick the first `message` snippet, falling back to the first `raw` one."""
    if not isinstance(highlight, dict):
        return None
    for name in HIGHLIGHT_FIELDS:
        snippets = highlight.get(name)
        if isinstance(snippets, list) and snippets:
            return str(snippets[0])
    return None


def _as_text(value: Any) -> str | None:
    return None if value is None else str(value)


def map_hit(hit: dict[str, Any]) -> LogSearchHit:
    """Map one backend hit (with its `_source` projection) to a LogSearchHit."""
    source = hit.get("_source") or {}
    score = hit.get("_score")
    return LogSearchHit(
        id=_as_text(hit.get("_id")),
        score=float(score) if isinstance(score, (int, float)) else 0.0,
        timestamp=_as_text(source.get("timestamp")),
        level=_as_text(source.get("level")),
        message=_as_text(source.get("message")),
        raw=_as_text(source.get("raw")),
        source=_as_text(source.get("source")),
        highlight=_first_snippet(hit.get("highlight")),
    )


def map_search_response(body: dict[str, Any], translated_query: str) -> LogSearchResponse:
    """Map a raw backend search response; missing counters default to 0."""
    hits_node = body.get("hits") or {}
    raw_hits = hits_node.get("hits")
    total_node = hits_node.get("total")
    total = total_node.get("value", 0) if isinstance(total_node, dict) else 0

    return LogSearchResponse(
        total=int(total or 0),
        took=int(body.get("took") or 0),
        translated_query=translated_query,
        hits=[map_hit(hit) for hit in raw_hits] if isinstance(raw_hits, list) else [],
    )


class SearchExecutor:
    """Runs log searches against the backend.

    Stateless between calls, so one instance can serve concurrent requests.

    Example:
        executor = SearchExecutor(sink=client, index="application-logs")
        response = await executor.search(LogSearchRequest(query='level = error'))
    """

    def __init__(
        self,
        sink: SearchSink,
        index: str,
        *,
        query_parser: LogQueryParser | None = None,
        enabled: bool = True,
    ) -> None:
        """Initialize the executor.

        Args:
            sink: Backend used to run the search.
            index: Index to search.
            query_parser: Compiler for the query DSL.
            enabled: When False every search fails with SearchDisabledError.
        """
        self.sink = sink
        self.index = index
        self.query_parser = query_parser or LogQueryParser()
        self.enabled = enabled

    async def search(self, request: LogSearchRequest) -> LogSearchResponse:
        """Compile and execute `request`.

        Raises:
            SearchDisabledError: Search is switched off.
            QueryError: The query is malformed (client error).
            SearchBackendError: The backend failed or returned an empty body.
        """
        if not self.enabled:
            raise SearchDisabledError(
                "Analytics search is disabled. Set SEARCH_ENABLED=true to use this feature."
            )

        parsed = self.query_parser.parse(request.query)
        payload = build_search_payload(
            parsed.query_string, request.resolve_from(), request.resolve_size()
        )

        try:
            body = await self.sink.search(self.index, payload)
        except SearchBackendError:
            logger.exception("Failed to execute analytics search")
            raise

        if not body:
            raise SearchBackendError("Search backend returned an empty response")
        if not isinstance(body, dict):
            raise SearchBackendError(
                f"Search backend returned {type(body).__name__} instead of a JSON object"
            )
        return map_search_response(body, parsed.query_string)
