"""Service for computing the day-long lottery window."""

from __future__ import annotations

from datetime import datetime, timedelta

from event_lottery.domain.models import Window, as_utc

DEFAULT_OFFSET_DAYS = 7

_ONE_DAY = timedelta(days=1)
_RESOLUTION = timedelta(microseconds=1)


def compute_window(now: datetime, offset_days: int = DEFAULT_OFFSET_DAYS) -> Window:
    """Return the calendar day *offset_days* after *now*, from midnight to its last instant.

    Both bounds are inclusive: ``end`` is one microsecond before the next
    midnight. Naive *now* is read as UTC.
    """
    target = as_utc(now) + timedelta(days=offset_days)
    start = target.replace(hour=0, minute=0, second=0, microsecond=0)
    return Window(start=start, end=start + _ONE_DAY - _RESOLUTION)
