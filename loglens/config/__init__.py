"""Configuration module for LogLens API."""

from loglens.config.settings import (
    APISettings,
    IngestionSettings,
    SearchBackendSettings,
    Settings,
    get_settings,
)

__all__ = [
    "Settings",
    "get_settings",
    "APISettings",
    "IngestionSettings",
    "SearchBackendSettings",
]
