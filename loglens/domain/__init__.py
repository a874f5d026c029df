from .search.dtos import LogSearchHit
from .search.dtos import LogSearchRequest
from .search.dtos import LogSearchResponse

__all__ = [
    "LogSearchHit",
    "LogSearchRequest",
    "LogSearchResponse",
]
