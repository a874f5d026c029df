"""Log ingestion service - owns the polling ticker.

This service orchestrates:
- Tailing configured log files via FileTailer
- Parsing lines via LogLineParser
- Shipping documents to the search backend via BatchShipper

Ticks run one after another with a fixed delay between the end of one pass
and the start of the next, so the tailer's offset state is never touched by
two passes at once.
"""
from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from loglens.services.logparser import LogLineParser

from .shipper import BatchShipper
from .tailer import FileTailer, TailerState

if TYPE_CHECKING:
    from loglens.config.settings import Settings
    from loglens.services.search.client import SearchSink


logger = logging.getLogger(__name__)


def ingestion_active(settings: "Settings") -> bool:
    """Return True when ingestion and the backend are both switched on."""
    return (
        settings.ingestion.enabled
        and settings.search.enabled
        and settings.search.ingest_enabled
    )


async def run_ingestion_tick(settings: "Settings", tailer: FileTailer) -> bool:
    """Run one ingestion pass over all configured paths.

    Returns:
        True if a pass ran, False if ingestion is switched off.
    """
    if not ingestion_active(settings):
        return False
    await tailer.tail_all(settings.ingestion.paths)
    return True


class LogIngestionService:
    """Runs ingestion ticks in a background task.

    Example:
        service = LogIngestionService.from_settings(settings, sink=client)
        await service.start()
        # ... later ...
        await service.stop()
    """

    def __init__(self, tailer: FileTailer, settings: "Settings") -> None:
        """Initialize the log ingestion service.

        Args:
            tailer: FileTailer holding the offset state and the shipper.
            settings: Application settings; read again on every tick.
        """
        self.tailer: FileTailer = tailer
        self.settings: "Settings" = settings

        # Background task management
        self._stop_event: asyncio.Event | None = None
        self._ingestion_task: asyncio.Task[None] | None = None

        # Statistics
        self.ticks: int = 0
        self.failed_ticks: int = 0

    @classmethod
    def from_settings(cls, settings: "Settings", sink: "SearchSink") -> "LogIngestionService":
        """Wire parser, shipper and tailer from settings."""
        shipper = BatchShipper(
            sink=sink,
            index=settings.search.index,
            bulk_size=settings.ingestion.bulk_size,
        )
        tailer = FileTailer(LogLineParser(), shipper, TailerState())
        return cls(tailer=tailer, settings=settings)

    @property
    def is_running(self) -> bool:
        """Return True if the ingestion task is running."""
        return self._ingestion_task is not None and not self._ingestion_task.done()

    async def start(self) -> None:
        """Start the ingestion background task."""
        if self.is_running:
            logger.warning("Ingestion already running")
            return

        if not self.settings.ingestion.enabled:
            logger.info("Log ingestion disabled (INGEST_ENABLED=false); ticks will be no-ops")

        self._stop_event = asyncio.Event()
        self._ingestion_task = asyncio.create_task(self._run_ingestion(), name="log-ingestion")
        logger.info(
            "Started log ingestion service (paths=%s, bulk_size=%d, poll_interval=%.1fs, initial_delay=%.1fs)",
            self.settings.ingestion.paths,
            self.settings.ingestion.bulk_size,
            self.settings.ingestion.poll_interval,
            self.settings.ingestion.initial_delay,
        )

    async def stop(self, timeout: float = 10.0) -> None:
        """Stop the ingestion gracefully.

        Args:
            timeout: Seconds to wait before force-cancelling.
        """
        if not self._stop_event or not self._ingestion_task:
            return

        self._stop_event.set()
        try:
            await asyncio.wait_for(self._ingestion_task, timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning("Ingestion did not stop gracefully, cancelling")
            self._ingestion_task.cancel()
            try:
                await self._ingestion_task
            except asyncio.CancelledError:
                pass
        except asyncio.CancelledError:
            pass

        logger.info(
            "Stopped log ingestion service. Ticks: %d, documents shipped: %d",
            self.ticks,
            self.documents_shipped,
        )

    async def _sleep(self, seconds: float) -> bool:
        """Wait for `seconds` or until stopped; return True if stopped."""
        if self._stop_event is None:
            return True
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return False
        return True

    async def _run_ingestion(self) -> None:
        """Core ticker loop."""
        if await self._sleep(self.settings.ingestion.initial_delay):
            return
        try:
            while True:
                try:
                    await run_ingestion_tick(self.settings, self.tailer)
                except Exception as e:
                    self.failed_ticks += 1
                    logger.exception("Ingestion tick failed: %s", e)
                self.ticks += 1
                if await self._sleep(self.settings.ingestion.poll_interval):
                    break
        except asyncio.CancelledError:
            logger.info("Ingestion cancelled")
            raise

    # Statistics properties for API endpoints
    @property
    def documents_shipped(self) -> int:
        return self.tailer.shipper.documents_shipped

    @property
    def documents_dropped(self) -> int:
        return self.tailer.shipper.documents_dropped

    @property
    def failed_batches(self) -> int:
        return self.tailer.shipper.failed_batches

    @property
    def parsed_lines(self) -> int:
        """Return the number of parsed lines from the parser."""
        return self.tailer.line_parser.parsed_lines

    @property
    def skipped_lines(self) -> int:
        """Return the number of skipped lines from the parser."""
        return self.tailer.line_parser.skipped_lines
