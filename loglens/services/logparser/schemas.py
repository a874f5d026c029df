"""Schemas for parsed log data - pure data, no transport dependencies."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from loglens.services.query.timestamps import format_instant


@dataclass(frozen=True)
class LogDocument:
    """One log line decoded into the document shape stored in the index."""

    timestamp: datetime
    message: str
    raw: str
    source: str
    level: str | None = field(default=None)

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON-ready document; `level` is omitted when unknown."""
        document: dict[str, Any] = {"timestamp": format_instant(self.timestamp)}
        if self.level is not None:
            document["level"] = self.level
        document["message"] = self.message
        document["raw"] = self.raw
        document["source"] = self.source
        return document
