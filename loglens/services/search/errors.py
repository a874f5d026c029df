"""Errors raised when talking to the search backend."""
from __future__ import annotations


class SearchBackendError(RuntimeError):
    """The search backend could not be reached or returned an unusable response."""


class SearchDisabledError(RuntimeError):
    """Search was requested while it is switched off in the settings."""
