from functools import lru_cache
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SearchBackendSettings(BaseSettings):
    """Search backend (Elasticsearch/OpenSearch) connection settings.

    The backend is shared by log ingestion (bulk writes) and the
    analytics search endpoint (queries).
    """

    model_config = SettingsConfigDict(env_prefix="SEARCH_", env_file=".env", extra="ignore")

    host: str = Field(default="http://localhost:9200", description="Base URL of the search backend")
    username: str | None = Field(default=None, description="Optional basic auth user")
    password: str | None = Field(default=None, description="Optional basic auth password")
    index: str = Field(default="application-logs", description="Index holding application log documents")
    enabled: bool = Field(default=False, description="Master switch for ingestion and search")
    ingest_enabled: bool = Field(default=True, description="Ship new log lines to the backend")
    search_enabled: bool = Field(default=True, description="Allow search requests against the backend")
    connect_timeout: float = Field(default=5.0, gt=0, description="Connect timeout in seconds")
    read_timeout: float = Field(default=30.0, gt=0, description="Total request timeout in seconds")

    @property
    def basic_auth(self) -> tuple[str, str] | None:
        """Return (username, password) when both credentials are configured."""
        if self.username and self.password:
            return self.username, self.password
        return None

    @model_validator(mode="after")
    def validate_host(self) -> "SearchBackendSettings":
        """Ensure the host is an http(s) URL."""
        if not self.host.startswith(("http://", "https://")):
            raise ValueError(
                "Search backend host must be an http(s) URL. "
                "Example: http://localhost:9200"
            )
        self.host = self.host.rstrip("/")
        return self


class IngestionSettings(BaseSettings):
    """Log file ingestion settings."""

    model_config = SettingsConfigDict(env_prefix="INGEST_", env_file=".env", extra="ignore")

    enabled: bool = Field(default=False, description="Enable the ingestion ticker")
    paths: list[str] = Field(
        default=["logs/application.log"],
        description="Log files (absolute or relative) to tail",
    )
    bulk_size: int = Field(
        default=200,
        ge=1,
        description="Maximum documents sent in a single bulk request",
    )
    poll_interval: float = Field(
        default=30.0,
        gt=0,
        description="Seconds to wait between the end of one pass and the start of the next",
    )
    initial_delay: float = Field(
        default=5.0,
        ge=0,
        description="Seconds to wait before the first pass",
    )


class APISettings(BaseSettings):
    """API server configuration settings."""

    model_config = SettingsConfigDict(env_prefix="API_", env_file=".env", extra="ignore")

    host: str = Field(default="0.0.0.0", description="API server host")
    port: int = Field(default=8000, description="API server port")
    workers: int = Field(default=1, description="Number of worker processes")
    reload: bool = Field(default=False, description="Enable auto-reload on code changes")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )


class Settings(BaseSettings):
    """Main application settings.

    Aggregates all configuration sections behind a single object.

    Configuration precedence (highest to lowest):
    1. Environment variables
    2. .env file
    3. Default values

    Example .env file:
        APP_DEBUG=true
        SEARCH_ENABLED=true
        SEARCH_HOST=http://elasticsearch:9200
        INGEST_ENABLED=true
        INGEST_PATHS=["logs/application.log", "logs/worker.log"]
    """

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application metadata
    name: str = Field(default="LogLens API", description="Application name")
    version: str = Field(default="0.1.0", description="Application version")
    description: str = Field(
        default="Log ingestion and field-query search over a search backend",
        description="Application description",
    )
    debug: bool = Field(default=False, description="Enable debug mode")
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Application environment",
    )

    # Sub-configurations
    api: APISettings = Field(default_factory=APISettings)
    search: SearchBackendSettings = Field(default_factory=SearchBackendSettings)
    ingestion: IngestionSettings = Field(default_factory=IngestionSettings)

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Cached so configuration is parsed once per process.

    Returns:
        Settings: Application settings instance
    """
    return Settings()
