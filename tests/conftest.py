import os
from typing import Any

import pytest

from loglens.services.search.errors import SearchBackendError


@pytest.fixture(scope="session", autouse=True)
def baseline_settings_env():
    """Provide baseline env vars so tests are not affected by local .env.

    Pydantic-settings precedence: init args > env vars > .env > defaults.
    Setting these ensures stable defaults regardless of any .env present.
    """
    os.environ.update({
        # App
        "APP_NAME": "LogLens API",
        "APP_VERSION": "0.1.0",
        "APP_DEBUG": "false",
        "APP_ENVIRONMENT": "development",
        # API
        "API_HOST": "0.0.0.0",
        "API_PORT": "8000",
        "API_WORKERS": "1",
        "API_RELOAD": "false",
        "API_LOG_LEVEL": "INFO",
        # Search backend
        "SEARCH_HOST": "http://localhost:9200",
        "SEARCH_INDEX": "application-logs",
        "SEARCH_ENABLED": "false",
        # Ingestion
        "INGEST_ENABLED": "false",
        "INGEST_BULK_SIZE": "200",
    })


@pytest.fixture(autouse=True)
def refresh_settings_cache():
    """Clear settings cache so env changes take effect per test.

    Ensures tests using monkeypatch.setenv() get a fresh Settings instance.
    """
    from loglens.config.settings import get_settings
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class FakeSink:
    """In-memory stand-in for the search backend.

    Records every bulk body and search payload it receives.
    """

    def __init__(
        self,
        search_response: Any = None,
        bulk_response: Any = None,
        fail_bulk: bool = False,
        fail_search: bool = False,
    ) -> None:
        self.bulk_bodies: list[bytes] = []
        self.search_calls: list[tuple[str, dict[str, Any]]] = []
        self.search_response = search_response
        self.bulk_response = bulk_response if bulk_response is not None else {"errors": False, "items": []}
        self.fail_bulk = fail_bulk
        self.fail_search = fail_search

    async def bulk(self, body: bytes) -> dict[str, Any] | None:
        self.bulk_bodies.append(body)
        if self.fail_bulk:
            raise SearchBackendError("connection refused")
        return self.bulk_response

    async def search(self, index: str, payload: dict[str, Any]) -> dict[str, Any] | None:
        self.search_calls.append((index, payload))
        if self.fail_search:
            raise SearchBackendError("connection refused")
        return self.search_response

    def bulk_documents(self, call: int = 0) -> list[bytes]:
        """Return the document lines (every second line) of one bulk body."""
        lines = self.bulk_bodies[call].splitlines()
        return lines[1::2]


@pytest.fixture
def fake_sink() -> FakeSink:
    """Return a fresh in-memory sink."""
    return FakeSink()
