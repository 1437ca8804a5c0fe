"""
Grouping primitives and aggregate lifecycle.

Responsibilities (kept minimal, one thing each):
- Key each record by (source address, window index).
- Fold records into mutable WindowAggregate instances, batch after batch.
- Merge accumulators built from separate shards.
- Hand the finished aggregates over read-only for scoring.

Notes
-----
- Response-code and method tallies are volume-weighted (by request_count).
- Every field merge is a sum, union or OR, so the final aggregate contents do
  not depend on how the input was split into batches. Only the record list
  keeps encounter order.
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Dict, Iterable, Mapping, Set

from ..config import DetectionConfig
from ..dto import UNKNOWN, LogRecord, WindowAggregate, WindowKey, is_missing
from .windowing import window_index

logger = logging.getLogger(__name__)


def update_aggregate(agg: WindowAggregate, rec: LogRecord, known_labels: frozenset[str]) -> None:
    """
    Fold a single record into its aggregate.

    Parameters
    ----------
    agg : WindowAggregate
        Mutable aggregate for the record's window.
    rec : LogRecord
        Normalized record.
    known_labels : frozenset[str]
        Lower-cased known-DDoS labels (exact match sets the known-attack flag).
    """
    agg.records.append(rec)
    agg.total_requests += rec.request_count
    agg.paths.add(rec.path)
    agg.user_agents.add(rec.user_agent)

    if not is_missing(rec.label):
        agg.labels.add(rec.label)
        if rec.label.lower() in known_labels:
            agg.has_known_attack = True

    if rec.response_code and rec.response_code != UNKNOWN:
        agg.response_codes[rec.response_code] = agg.response_codes.get(rec.response_code, 0) + rec.request_count

    if rec.method and rec.method != UNKNOWN:
        agg.methods[rec.method] = agg.methods.get(rec.method, 0) + rec.request_count


def merge_aggregate(into: WindowAggregate, other: WindowAggregate) -> None:
    """Merge `other` into `into` (same key); records of `other` go after those of `into`."""
    if into.key != other.key:
        raise ValueError(f"Cannot merge aggregates with different keys: {into.key} vs {other.key}")
    into.records.extend(other.records)
    into.total_requests += other.total_requests
    into.paths |= other.paths
    into.user_agents |= other.user_agents
    into.labels |= other.labels
    into.has_known_attack = into.has_known_attack or other.has_known_attack
    for code, count in other.response_codes.items():
        into.response_codes[code] = into.response_codes.get(code, 0) + count
    for method, count in other.methods.items():
        into.methods[method] = into.methods.get(method, 0) + count


class WindowAccumulator:
    """
    Builds WindowAggregates incrementally.

    Usage:
        acc = WindowAccumulator.from_config(cfg)
        for batch in source.batches():
            acc.ingest(batch)
        windows = acc.finalize()

    Whole-file and streamed callers share this one path; state is owned by
    the instance, so concurrent runs need separate accumulators.
    """

    def __init__(self, *, window_minutes: int = 5, known_labels: Iterable[str] = ()) -> None:
        if window_minutes <= 0:
            raise ValueError(f"window_minutes must be positive, got {window_minutes}")
        self.window_minutes = int(window_minutes)
        self._known = frozenset(label.lower() for label in known_labels)
        self._windows: Dict[WindowKey, WindowAggregate] = {}
        self._sources: Set[str] = set()
        self._total = 0
        self._finalized = False

    @classmethod
    def from_config(cls, cfg: DetectionConfig) -> "WindowAccumulator":
        return cls(window_minutes=cfg.window_minutes, known_labels=cfg.known_ddos_labels)

    # --- accumulation ---

    def add(self, rec: LogRecord) -> WindowAggregate:
        """Fold one record in and return its aggregate."""
        self._ensure_open()
        key = WindowKey(rec.source_ip, window_index(rec.timestamp, self.window_minutes))
        agg = self._windows.get(key)
        if agg is None:
            agg = WindowAggregate(key=key)
            self._windows[key] = agg
        update_aggregate(agg, rec, self._known)
        self._sources.add(rec.source_ip)
        self._total += 1
        return agg

    def ingest(self, batch: Iterable[LogRecord]) -> int:
        """Fold a batch in; returns the number of records ingested."""
        n = 0
        for rec in batch:
            self.add(rec)
            n += 1
        logger.debug("Ingested %d records (%d windows open)", n, len(self._windows))
        return n

    def merge(self, other: "WindowAccumulator") -> None:
        """Absorb another shard's accumulator; `other` must not be used afterwards."""
        self._ensure_open()
        if other.window_minutes != self.window_minutes:
            raise ValueError(
                f"Cannot merge accumulators with different window sizes "
                f"({self.window_minutes} vs {other.window_minutes} minutes)"
            )
        for key, agg in other._windows.items():
            mine = self._windows.get(key)
            if mine is None:
                self._windows[key] = agg
            else:
                merge_aggregate(mine, agg)
        self._sources |= other._sources
        self._total += other._total

    # --- read side ---

    @property
    def total_records(self) -> int:
        return self._total

    @property
    def source_ips(self) -> frozenset[str]:
        return frozenset(self._sources)

    def __len__(self) -> int:
        return len(self._windows)

    def finalize(self) -> Mapping[WindowKey, WindowAggregate]:
        """
        Close the accumulator and return a read-only view of the aggregates.
        Further ingest/merge calls raise RuntimeError.
        """
        self._finalized = True
        return MappingProxyType(self._windows)

    def _ensure_open(self) -> None:
        if self._finalized:
            raise RuntimeError("Accumulator already finalized")
