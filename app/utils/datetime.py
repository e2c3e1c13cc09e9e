"""Helpers for working with timezone-aware datetimes."""

from __future__ import annotations

import re
from datetime import datetime, time, timedelta, timezone, tzinfo
from functools import lru_cache
from typing import Final

from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.config import get_settings

_DEFAULT_TIMEZONE: Final[str] = "UTC"
_OFFSET_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"^(?:UTC|GMT)(?P<sign>[+-])(?P<hours>\d{1,2})(?::?(?P<minutes>\d{2}))?$",
    re.IGNORECASE,
)
_CLOCK_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"^(?P<hours>[01]?\d|2[0-3]):(?P<minutes>[0-5]\d)$"
)


@lru_cache(maxsize=1)
def get_app_timezone() -> tzinfo:
    """Return the configured application timezone.

    Quiet-hours windows are wall-clock times and are evaluated against this
    single zone. ``APP_TIMEZONE`` accepts IANA names (``Europe/Madrid``) or
    fixed offsets (``UTC+02:00``); anything unresolvable falls back to UTC.
    """

    settings = get_settings()
    tz_name = (settings.app_timezone or "").strip() or _DEFAULT_TIMEZONE
    return _resolve_timezone(tz_name)


def now_in_app_timezone() -> datetime:
    """Return the current time localized to the configured timezone."""

    return datetime.now(tz=get_app_timezone())


def now_in_app_naive_datetime() -> datetime:
    """Return the current localized time without attaching ``tzinfo``."""

    return now_in_app_timezone().replace(tzinfo=None)


def ensure_app_timezone(value: datetime | None) -> datetime | None:
    """Normalize ``value`` so it is expressed in the configured timezone.

    Naive values are assumed to already be in the application timezone, which is
    how they are written to the database.
    """

    if value is None:
        return None

    tz = get_app_timezone()
    if value.tzinfo is None:
        return value.replace(tzinfo=tz)
    return value.astimezone(tz)


def ensure_app_naive_datetime(value: datetime | None) -> datetime | None:
    """Return ``value`` localized to the app timezone but without ``tzinfo``.

    Not every backend keeps the offset of ``DATETIME`` columns (SQLite drops it
    silently), so every timestamp is stored as naive application-local time.
    """

    localized = ensure_app_timezone(value)
    if localized is None:
        return None
    return localized.replace(tzinfo=None)


def parse_clock_time(value: str) -> time:
    """Parse a ``HH:MM`` wall-clock value or raise ``ValueError``."""

    match = _CLOCK_PATTERN.match(value.strip()) if isinstance(value, str) else None
    if match is None:
        raise ValueError(f"'{value}' is not a valid HH:MM time")
    return time(int(match.group("hours")), int(match.group("minutes")))


def format_clock_time(value: datetime | time) -> str:
    """Return the ``HH:MM`` representation of ``value``."""

    return f"{value.hour:02d}:{value.minute:02d}"


def _resolve_timezone(tz_name: str) -> tzinfo:
    """Resolve ``tz_name`` into a ``tzinfo`` instance."""

    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        match = _OFFSET_PATTERN.match(tz_name)
        if match:
            sign = -1 if match.group("sign") == "-" else 1
            hours = int(match.group("hours"))
            minutes = int(match.group("minutes") or 0)
            offset = timedelta(hours=hours, minutes=minutes)
            return timezone(sign * offset)
    return timezone.utc
