"""Log query compiler - field-query DSL to search-backend query strings."""
from .errors import QueryError, QuerySyntaxError, QueryTranslationError
from .parser import LogQueryParser, ParseResult

__all__ = [
    "LogQueryParser",
    "ParseResult",
    "QueryError",
    "QuerySyntaxError",
    "QueryTranslationError",
]
