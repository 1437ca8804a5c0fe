"""
Record normalizer: one raw field map -> LogRecord or RowRejection.

Rules
-----
- Strings are trimmed; empty strings count as absent.
- Integer fields are best-effort and default to 1 (also for non-positive values).
- Float fields default to 0 (also for negative or non-finite values).
- Absent optional columns take the UNKNOWN sentinel rather than failing.
- Timestamp, source address and destination address are required. A row
  missing any of them is rejected with a warning and never reaches grouping.

No state is shared across calls; the same row always normalizes the same way.
"""

from __future__ import annotations

import logging
import math
import re
from datetime import datetime, timezone
from typing import Mapping, Optional, Union

import pandas as pd

from ..config import ColumnMapping
from ..dto import MISSING_VALUES, UNKNOWN, LogRecord, RowRejection, is_missing

logger = logging.getLogger(__name__)

_EPOCH_RE = re.compile(r"^\d+(\.\d+)?$")


def _text(row: Mapping[str, object], column: Optional[str]) -> Optional[str]:
    """Trimmed cell text, or None when the column is unmapped, missing or blank."""
    if column is None or column not in row:
        return None
    value = row[column]
    if value is None:
        return None
    if not isinstance(value, str):
        if pd.isna(value):
            return None
        value = str(value)
    value = value.strip()
    return value or None


def _required(row: Mapping[str, object], column: str) -> Optional[str]:
    value = _text(row, column)
    if value is None or value.lower() in MISSING_VALUES:
        return None
    return value


def _label(row: Mapping[str, object], column: Optional[str]) -> str:
    value = _text(row, column)
    return UNKNOWN if is_missing(value) else value


def parse_timestamp(text: Optional[str]) -> Optional[datetime]:
    """
    Parse a timestamp into a tz-aware UTC datetime.

    Accepts ISO-8601 / 'YYYY-MM-DD HH:MM:SS[.ffffff]' strings and bare epoch
    seconds. Naive values are taken as UTC. Returns None if unparseable.
    """
    if text is None:
        return None
    if _EPOCH_RE.match(text):
        try:
            return datetime.fromtimestamp(float(text), tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    try:
        ts = pd.Timestamp(text)
    except (ValueError, OverflowError):
        return None
    if pd.isna(ts):
        return None
    if ts.tzinfo is None:
        ts = ts.tz_localize("UTC")
    else:
        ts = ts.tz_convert("UTC")
    return ts.to_pydatetime()


def parse_count(text: Optional[str], default: int = 1) -> int:
    """Best-effort positive integer ('12', '12.7', ' 3 '); `default` otherwise."""
    if text is None:
        return default
    try:
        value = int(text)
    except ValueError:
        try:
            value = int(float(text))
        except (ValueError, OverflowError):
            return default
    return value if value > 0 else default


def parse_amount(text: Optional[str], default: float = 0.0) -> float:
    """Best-effort non-negative float; `default` otherwise."""
    if text is None:
        return default
    try:
        value = float(text)
    except ValueError:
        return default
    if not math.isfinite(value) or value < 0:
        return default
    return value


def normalize_row(
    row: Mapping[str, object],
    columns: ColumnMapping,
    row_index: int,
) -> Union[LogRecord, RowRejection]:
    """
    Convert one raw row into a LogRecord.

    Returns a RowRejection (and logs a warning carrying `row_index`) when a
    required field is missing or the timestamp cannot be parsed.
    """
    timestamp = parse_timestamp(_required(row, columns.timestamp))
    source_ip = _required(row, columns.source_ip)
    destination_ip = _required(row, columns.destination_ip)

    missing = tuple(
        name
        for name, value in (
            ("timestamp", timestamp),
            ("source_ip", source_ip),
            ("destination_ip", destination_ip),
        )
        if value is None
    )
    if missing:
        logger.warning("Skipping malformed row %d (missing: %s)", row_index, ", ".join(missing))
        return RowRejection(row_index=row_index, missing=missing)

    return LogRecord(
        timestamp=timestamp,
        source_ip=source_ip,
        destination_ip=destination_ip,
        request_count=parse_count(_text(row, columns.request_count)),
        duration=parse_amount(_text(row, columns.flow_duration)),
        byte_count=parse_amount(_text(row, columns.total_bytes)),
        label=_label(row, columns.label),
        user_agent=_text(row, columns.user_agent) or UNKNOWN,
        response_code=_text(row, columns.response_code) or UNKNOWN,
        method=_text(row, columns.method) or UNKNOWN,
        path=_text(row, columns.path) or UNKNOWN,
        row_index=row_index,
    )
