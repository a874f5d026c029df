"""DTOs for log search requests and results."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_PAGE_SIZE = 20
MIN_PAGE_SIZE = 1
MAX_PAGE_SIZE = 200


class LogSearchRequest(BaseModel):
    """A search over indexed log documents.

    `from_` is read from the `from` key of the JSON request body. `size` is
    not bounded here; `resolve_size` clamps it.
    """

    model_config = ConfigDict(populate_by_name=True)

    query: str = Field(description="Query in the log field-query language")
    from_: int | None = Field(
        default=None,
        ge=0,
        strict=True,
        alias="from",
        description="Offset of the first hit",
    )
    size: int | None = Field(default=None, strict=True, description="Number of hits to return")

    @field_validator("query")
    @classmethod
    def validate_query(cls, value: str) -> str:
        """Reject blank queries."""
        if not value.strip():
            raise ValueError("Query is required")
        return value

    def resolve_from(self) -> int:
        """Offset of the first hit, 0 when not given."""
        return self.from_ if self.from_ is not None else 0

    def resolve_size(self) -> int:
        """Page size, 20 when not given, always clamped to [1, 200]."""
        resolved = self.size if self.size is not None else DEFAULT_PAGE_SIZE
        return min(max(resolved, MIN_PAGE_SIZE), MAX_PAGE_SIZE)


@dataclass
class LogSearchHit:
    """A single matching log document."""

    id: str | None
    score: float
    timestamp: str | None
    level: str | None
    message: str | None
    raw: str | None
    source: str | None
    highlight: str | None = None


@dataclass
class LogSearchResponse:
    """Search results plus the query string that was sent to the backend."""

    total: int
    took: int
    translated_query: str
    hits: list[LogSearchHit] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Return the camelCase JSON shape used by the API."""
        return {
            "total": self.total,
            "took": self.took,
            "translatedQuery": self.translated_query,
            "hits": [asdict(hit) for hit in self.hits],
        }
