"""Incremental reading of growing log files.

Each configured file is read from the byte offset where the previous pass
stopped. A file that is now shorter than that offset is treated as rotated
or truncated and is read again from the start.
"""
from __future__ import annotations

import logging
import os
import stat
from pathlib import Path

import aiofiles
import aiofiles.os

from loglens.services.logparser import LogLineParser

from .shipper import BatchShipper

logger = logging.getLogger(__name__)


def normalize_path(path: str | Path) -> Path:
    """Absolute, normalized form of `path` (symlinks are not resolved)."""
    return Path(os.path.abspath(os.path.expanduser(path)))


class TailerState:
    """Byte offsets reached per file.

    In-memory only; a restart starts every file again from offset 0.
    Not guarded by a lock: passes must not run concurrently.
    """

    def __init__(self) -> None:
        self._offsets: dict[Path, int] = {}

    def offset(self, path: Path) -> int:
        return self._offsets.get(path, 0)

    def update(self, path: Path, offset: int) -> None:
        self._offsets[path] = offset

    def reset(self, path: Path) -> None:
        self._offsets.pop(path, None)

    def snapshot(self) -> dict[Path, int]:
        """Return a copy of all tracked offsets."""
        return dict(self._offsets)


class FileTailer:
    """Reads new lines from log files and hands parsed documents to a shipper."""

    def __init__(
        self,
        line_parser: LogLineParser,
        shipper: BatchShipper,
        state: TailerState | None = None,
    ) -> None:
        self.line_parser = line_parser
        self.shipper = shipper
        self.state = state or TailerState()

        # Statistics
        self.lines_read: int = 0
        self.rotations: int = 0

    async def tail_all(self, paths: list[str] | list[Path]) -> None:
        """Run one pass over every path, in order.

        An IO failure on one path is logged and does not stop the others.
        """
        for configured_path in paths:
            path = normalize_path(configured_path)
            try:
                await self.tail(path)
            except OSError:
                logger.exception("Failed to ingest logs from %s", path)
                self.shipper.discard()

    async def tail(self, path: Path) -> int:
        """Read everything appended to `path` since the last pass.

        Returns:
            Number of lines read during this pass.

        Raises:
            OSError: The file could not be read. The stored offset is left
                unchanged in that case.
        """
        try:
            file_stat = await aiofiles.os.stat(path)
        except FileNotFoundError:
            logger.debug("Skipping ingestion for non-existent log file: %s", path)
            return 0
        if not stat.S_ISREG(file_stat.st_mode):
            logger.warning("Configured log path is not a file: %s", path)
            return 0

        offset = self.state.offset(path)
        if file_stat.st_size < offset:
            logger.info(
                "Log file %s rotated or truncated (size: %d < offset: %d), reading from start",
                path,
                file_stat.st_size,
                offset,
            )
            self.rotations += 1
            offset = 0

        lines = 0
        source = str(path)
        async with aiofiles.open(path, "rb") as file:
            await file.seek(offset)
            async for raw_line in file:
                offset += len(raw_line)
                lines += 1
                line = raw_line.decode("utf-8", errors="replace").rstrip("\r\n")
                if document := self.line_parser.parse(line, source):
                    await self.shipper.add(document)

        await self.shipper.flush()
        self.state.update(path, offset)
        self.lines_read += lines
        if lines:
            logger.debug("Read %d line(s) from %s, offset now %d", lines, path, offset)
        return lines
