"""Evaluation of the do-not-disturb window."""

from __future__ import annotations

from datetime import datetime, timedelta

from app.domain.entities import QuietHours
from app.utils import parse_clock_time


def is_quiet(quiet_hours: QuietHours, now: datetime) -> bool:
    """Return whether ``now`` falls inside the quiet window.

    Both ends of the window are inclusive and only the ``HH:MM`` part of
    ``now`` is compared. A window whose start is later than its end spans
    midnight.
    """

    if not quiet_hours.enabled:
        return False

    start = parse_clock_time(quiet_hours.start)
    end = parse_clock_time(quiet_hours.end)
    current = now.time().replace(second=0, microsecond=0)

    if start <= end:
        return start <= current <= end
    return current >= start or current <= end


def quiet_hours_end(quiet_hours: QuietHours, now: datetime) -> datetime:
    """Return the first minute after the quiet window containing ``now``."""

    end = parse_clock_time(quiet_hours.end)
    candidate = now.replace(hour=end.hour, minute=end.minute, second=0, microsecond=0)
    candidate += timedelta(minutes=1)
    if candidate <= now:
        candidate += timedelta(days=1)
    return candidate


__all__ = ["is_quiet", "quiet_hours_end"]
