"""Search backend access - bulk writes and query execution."""
from .client import SearchBackendClient, SearchSink
from .errors import SearchBackendError, SearchDisabledError
from .executor import SearchExecutor

__all__ = [
    "SearchBackendClient",
    "SearchSink",
    "SearchBackendError",
    "SearchDisabledError",
    "SearchExecutor",
]
