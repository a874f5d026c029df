"""Global plugin configurations.

This module provides:
- Logging configuration
- OpenAPI configuration
"""
from __future__ import annotations

from litestar.logging import LoggingConfig
from litestar.openapi import OpenAPIConfig

from loglens.config.settings import get_settings

settings = get_settings()

# Logging configuration
logging_config = LoggingConfig(
    root={"level": settings.api.log_level, "handlers": ["queue_listener"]},
    formatters={
        "standard": {"format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"}
    },
    log_exceptions="always",
)

openapi_config = OpenAPIConfig(
    title=settings.name,
    version=settings.version,
    description=settings.description,
    create_examples=True,
)
