"""Batching of parsed log documents into bulk requests."""
from __future__ import annotations

import logging

from litestar.serialization import encode_json

from loglens.services.logparser.schemas import LogDocument
from loglens.services.search.client import SearchSink
from loglens.services.search.errors import SearchBackendError

logger = logging.getLogger(__name__)


def encode_bulk_body(documents: list[LogDocument], index: str) -> bytes:
    """Serialize documents as NDJSON action/document line pairs."""
    action = encode_json({"index": {"_index": index}})
    lines: list[bytes] = []
    for document in documents:
        lines.append(action)
        lines.append(encode_json(document.to_dict()))
    return b"\n".join(lines) + b"\n"


class BatchShipper:
    """Buffers documents and ships them to the backend in bulk.

    A full buffer is flushed as soon as it reaches `bulk_size`; callers flush
    the remainder when their input is exhausted.

    Delivery is at-most-once: a batch whose request fails is logged and
    dropped, never retried or re-buffered.
    """

    def __init__(self, sink: SearchSink, index: str, bulk_size: int = 200) -> None:
        if bulk_size < 1:
            raise ValueError("bulk_size must be at least 1")
        self.sink = sink
        self.index = index
        self.bulk_size = bulk_size
        self._buffer: list[LogDocument] = []

        # Statistics
        self.documents_shipped: int = 0
        self.documents_dropped: int = 0
        self.batches_sent: int = 0
        self.failed_batches: int = 0

    @property
    def pending(self) -> int:
        """Number of buffered documents not yet flushed."""
        return len(self._buffer)

    def discard(self) -> int:
        """Drop buffered documents without sending them; return how many."""
        dropped = len(self._buffer)
        self._buffer = []
        self.documents_dropped += dropped
        return dropped

    async def add(self, document: LogDocument) -> None:
        """Buffer a document, flushing when the buffer is full."""
        self._buffer.append(document)
        if len(self._buffer) >= self.bulk_size:
            await self.flush()

    async def flush(self) -> int:
        """Send everything buffered as one bulk request.

        Returns:
            Number of documents handed to the backend (0 if empty or failed).
        """
        if not self._buffer:
            return 0

        batch, self._buffer = self._buffer, []
        body = encode_bulk_body(batch, self.index)
        try:
            response = await self.sink.bulk(body)
        except SearchBackendError:
            self.failed_batches += 1
            self.documents_dropped += len(batch)
            logger.exception("Failed to ship batch of %d log documents", len(batch))
            return 0

        self.batches_sent += 1
        self.documents_shipped += len(batch)
        if isinstance(response, dict) and response.get("errors"):
            rejected = sum(
                1
                for item in response.get("items", [])
                if isinstance(item, dict) and (item.get("index") or {}).get("error")
            )
            logger.warning(
                "Bulk request to index %s completed with %d rejected document(s)",
                self.index,
                rejected,
            )
        logger.debug("Shipped %d log documents to index %s", len(batch), self.index)
        return len(batch)
