"""HTTP client for the search backend (Elasticsearch/OpenSearch REST API).

Only two endpoints are used:

- ``POST /_bulk?refresh=false`` with an NDJSON body (ingestion)
- ``POST /<index>/_search`` with a JSON body (analytics search)
"""
from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Protocol

import aiohttp
from litestar.exceptions import SerializationException
from litestar.serialization import decode_json, encode_json

from .errors import SearchBackendError

if TYPE_CHECKING:
    from loglens.config.settings import SearchBackendSettings

logger = logging.getLogger(__name__)

NDJSON_CONTENT_TYPE = "application/x-ndjson"
JSON_CONTENT_TYPE = "application/json"


class SearchSink(Protocol):
    """What ingestion and search need from the backend."""

    async def bulk(self, body: bytes) -> dict[str, Any] | None:
        """Post an NDJSON bulk body; return the decoded response, if any."""
        ...

    async def search(self, index: str, payload: dict[str, Any]) -> dict[str, Any] | None:
        """Run a search request; return the decoded response, if any."""
        ...


class SearchBackendClient:
    """aiohttp based implementation of SearchSink.

    The underlying session is created lazily on first use so the client can
    be built outside a running event loop, and must be closed with `close()`.
    """

    def __init__(
        self,
        host: str,
        *,
        auth: tuple[str, str] | None = None,
        connect_timeout: float = 5.0,
        read_timeout: float = 30.0,
    ) -> None:
        self.host = host.rstrip("/")
        self.auth = aiohttp.BasicAuth(*auth) if auth else None
        self.timeout = aiohttp.ClientTimeout(total=read_timeout, connect=connect_timeout)
        self._session: aiohttp.ClientSession | None = None

    @classmethod
    def from_settings(cls, settings: "SearchBackendSettings") -> "SearchBackendClient":
        return cls(
            settings.host,
            auth=settings.basic_auth,
            connect_timeout=settings.connect_timeout,
            read_timeout=settings.read_timeout,
        )

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                auth=self.auth,
                timeout=self.timeout,
                raise_for_status=True,
            )
        return self._session

    async def close(self) -> None:
        """Close the HTTP session if one was opened."""
        if self._session and not self._session.closed:
            await self._session.close()
            logger.info("Closed search backend session")
        self._session = None

    async def _post(self, path: str, body: bytes, content_type: str) -> dict[str, Any] | None:
        url = f"{self.host}{path}"
        try:
            async with self._get_session().post(
                url, data=body, headers={"Content-Type": content_type}
            ) as response:
                raw = await response.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise SearchBackendError(f"Request to {url} failed: {e}") from e

        if not raw.strip():
            return None
        try:
            decoded = decode_json(raw)
        except SerializationException as e:
            raise SearchBackendError(f"Invalid JSON returned by {url}") from e
        if not isinstance(decoded, dict):
            raise SearchBackendError(
                f"Expected a JSON object from {url}, got {type(decoded).__name__}"
            )
        return decoded

    async def bulk(self, body: bytes) -> dict[str, Any] | None:
        return await self._post("/_bulk?refresh=false", body, NDJSON_CONTENT_TYPE)

    async def search(self, index: str, payload: dict[str, Any]) -> dict[str, Any] | None:
        return await self._post(f"/{index}/_search", encode_json(payload), JSON_CONTENT_TYPE)
