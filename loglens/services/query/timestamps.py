"""ISO-8601 timestamp handling shared by query translation and line parsing.

Accepted forms, tried in order (first match wins):

1. instant:              2024-01-01T10:00:00Z
2. offset date-time:     2024-01-01T10:00:00+02:00
3. local date-time:      2024-01-01T10:00:00      (process local zone)
4. local date:           2024-01-01               (local midnight)
"""
from __future__ import annotations

import re
from datetime import date, datetime, timezone

_DATE = r"\d{4}-\d{2}-\d{2}"
_TIME = r"\d{2}:\d{2}(?::\d{2}(?:\.\d+)?)?"

INSTANT_PATTERN = re.compile(rf"{_DATE}T{_TIME}Z", re.IGNORECASE)
OFFSET_DATETIME_PATTERN = re.compile(rf"{_DATE}T{_TIME}[+-]\d{{2}}:\d{{2}}", re.IGNORECASE)
LOCAL_DATETIME_PATTERN = re.compile(rf"{_DATE}T{_TIME}", re.IGNORECASE)
LOCAL_DATE_PATTERN = re.compile(_DATE)


def _from_iso(text: str) -> datetime | None:
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def _parse_instant(text: str) -> datetime | None:
    if not INSTANT_PATTERN.fullmatch(text):
        return None
    return _from_iso(text[:-1] + "+00:00")


def _parse_offset_datetime(text: str) -> datetime | None:
    if not OFFSET_DATETIME_PATTERN.fullmatch(text):
        return None
    return _from_iso(text)


def _parse_local_datetime(text: str) -> datetime | None:
    if not LOCAL_DATETIME_PATTERN.fullmatch(text):
        return None
    parsed = _from_iso(text)
    # naive datetimes are interpreted in the local zone by astimezone()
    return parsed.astimezone() if parsed else None


def _parse_local_date(text: str) -> datetime | None:
    if not LOCAL_DATE_PATTERN.fullmatch(text):
        return None
    try:
        day = date.fromisoformat(text)
    except ValueError:
        return None
    return datetime(day.year, day.month, day.day).astimezone()


PARSERS = (
    _parse_instant,
    _parse_offset_datetime,
    _parse_local_datetime,
    _parse_local_date,
)


def try_parse_timestamp(value: str | None) -> datetime | None:
    """Parse `value` into an aware UTC datetime, or return None."""
    if not value:
        return None
    text = value.strip()
    for parser in PARSERS:
        parsed = parser(text)
        if parsed is not None:
            return parsed.astimezone(timezone.utc)
    return None


def format_instant(moment: datetime) -> str:
    """Render a datetime as a UTC instant, e.g. ``2024-01-01T00:00:00Z``.

    Fractional seconds are only written when non-zero, as milliseconds when
    that is exact, else as microseconds.
    """
    if moment.tzinfo is None:
        moment = moment.astimezone()
    moment = moment.astimezone(timezone.utc)
    text = moment.strftime("%Y-%m-%dT%H:%M:%S")
    if moment.microsecond:
        fraction = f"{moment.microsecond:06d}"
        if moment.microsecond % 1000 == 0:
            fraction = fraction[:3]
        text = f"{text}.{fraction}"
    return text + "Z"
