"""
Windowing utilities.

The pipeline operates on fixed, tumbling windows of `window_minutes`. A
record's window index is floor(epoch_seconds / window_seconds), so it depends
only on the timestamp and the configured size. All times are UTC.
"""

from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def window_index(ts: datetime, window_minutes: int) -> int:
    """
    Return the tumbling-window index for `ts`.

    Naive datetimes are interpreted as UTC.
    """
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    seconds = (ts - _EPOCH).total_seconds()
    return math.floor(seconds / (window_minutes * 60))


def window_start(index: int, window_minutes: int) -> datetime:
    """Inclusive lower bound of window `index` (tz-aware UTC)."""
    return _EPOCH + timedelta(seconds=index * window_minutes * 60)


def request_frequency(total_requests: int, window_minutes: int) -> float:
    """
    Requests per window-minute.

    The divisor is the configured window length, not the span actually
    covered by the window's records; all windows have the same length.
    """
    return total_requests / window_minutes
