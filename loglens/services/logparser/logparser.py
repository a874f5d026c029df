import logging
from datetime import datetime, timezone

from loglens.services.query.timestamps import try_parse_timestamp

from .schemas import LogDocument


logger = logging.getLogger(__name__)


class LogLineParser:
    """Heuristically decodes free-form application log lines.

    Recognised shapes include::

        2024-01-01T10:00:00Z ERROR something broke
        [2024-01-01T10:00:00Z] [warn] disk almost full
        INFO started worker

    Anything that does not fit is kept whole as the message.
    """

    def __init__(self) -> None:
        # Statistics
        self.parsed_lines: int = 0
        self.skipped_lines: int = 0

    def parsed_lines_count(self) -> int:
        """Return the number of lines turned into documents."""
        return self.parsed_lines

    def skipped_lines_count(self) -> int:
        """Return the number of blank lines skipped."""
        return self.skipped_lines

    def parse(self, line: str, source: str) -> LogDocument | None:
        """Parse one line read from `source`.

        Args:
            line: The raw line, without its line terminator.
            source: Path of the file the line came from.

        Returns:
            LogDocument, or None for blank lines.
        """
        trimmed = line.strip()
        if not trimmed:
            self.skipped_lines += 1
            return None

        timestamp, message = self._split_timestamp(trimmed)
        level, message = self._split_level(message)
        self.parsed_lines += 1

        return LogDocument(
            timestamp=timestamp or datetime.now(timezone.utc),
            level=level,
            message=message,
            raw=line,
            source=source,
        )

    def _split_timestamp(self, text: str) -> tuple[datetime | None, str]:
        """Take a leading (optionally bracketed) timestamp off `text`."""
        first_space = text.find(" ")
        if first_space <= 0:
            return None, text

        candidate = text[:first_space]
        if candidate.startswith("["):
            candidate = candidate[1:]
        if candidate.endswith("]"):
            candidate = candidate[:-1]

        timestamp = try_parse_timestamp(candidate.strip())
        if timestamp is None:
            logger.debug("No timestamp prefix in line: '%s'", text)
            return None, text
        return timestamp, text[first_space + 1:].strip()

    def _split_level(self, text: str) -> tuple[str | None, str]:
        """Take a leading `[level]` or all-letter word off `text`."""
        if text.startswith("["):
            closing = text.find("]")
            if closing > 0:
                level = text[1:closing].strip().upper()
                return level, text[closing + 1:].strip()
            return None, text

        space = text.find(" ")
        if space > 0:
            word = text[:space]
            if word.isalpha():
                return word.upper(), text[space + 1:].strip()
        return None, text
