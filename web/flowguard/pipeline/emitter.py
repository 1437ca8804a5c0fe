"""
Emission queue (synchronous, minimal).

Forwards the ranked output of a run to the downstream consumer
(ResultSinkPort). Calls are synchronous: flagged windows go out one by one in
rank order, then the statistics once.

- `emit_flagged(window)` -> `sink.on_flagged(window)`
- `emit_stats(stats)`    -> `sink.on_stats(stats)`
- `close()`              -> no buffered state to flush
"""

from __future__ import annotations

from typing import List, Optional

from ..dto import AnalysisStats, FlaggedWindow
from ..ports import ResultSinkPort


class EmissionQueue:
    def __init__(self, *, sink: ResultSinkPort) -> None:
        self._sink = sink
        self._closed = False
        self.emitted = 0

    def emit_flagged(self, window: FlaggedWindow) -> None:
        if self._closed:
            raise RuntimeError("EmissionQueue is closed")
        self._sink.on_flagged(window)
        self.emitted += 1

    def emit_stats(self, stats: AnalysisStats) -> None:
        if self._closed:
            raise RuntimeError("EmissionQueue is closed")
        self._sink.on_stats(stats)

    def close(self) -> None:
        self._closed = True


class CollectingSink:
    """In-memory sink; keeps everything it receives."""

    def __init__(self) -> None:
        self.flagged: List[FlaggedWindow] = []
        self.stats: Optional[AnalysisStats] = None

    def on_flagged(self, window: FlaggedWindow) -> None:
        self.flagged.append(window)

    def on_stats(self, stats: AnalysisStats) -> None:
        self.stats = stats
