"""Errors raised while compiling a log query."""
from __future__ import annotations


class QueryError(ValueError):
    """Base class for client-input errors in a log query."""


class QuerySyntaxError(QueryError):
    """The query could not be tokenized or parsed.

    Attributes:
        position: Character offset in the query where the problem was found,
            or None when it does not apply (e.g. an empty query).
    """

    def __init__(self, message: str, position: int | None = None) -> None:
        super().__init__(message)
        self.position = position


class QueryTranslationError(QueryError):
    """A well-formed condition could not be translated for the search backend."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field
