"""
Hexagonal interfaces (Ports) for the scoring pipeline.

These define the boundary between the engine and I/O adapters.
Keep them small and implementation-agnostic so they're easy to mock in tests.
"""

from __future__ import annotations

from typing import Iterable, Protocol, Sequence

from .dto import AnalysisStats, FlaggedWindow, LogRecord


class RecordSourcePort(Protocol):
    """
    Supplies normalized LogRecords in batches.
    A whole-file source yields a single batch; a streaming source yields
    fixed-size batches plus a final partial one. Batches are consumed in
    emission order.
    """

    rows_rejected: int

    def batches(self) -> Iterable[Sequence[LogRecord]]:
        """
        Yield batches of valid records. Read failures MUST surface as
        SourceReadError; malformed rows are skipped and counted in
        `rows_rejected`.
        """
        ...


class ResultSinkPort(Protocol):
    """
    Receives the ranked output of one run.
    Implementations might collect in memory, render a report or forward to
    an explanation service; nothing is persisted by the engine itself.
    """

    def on_flagged(self, window: FlaggedWindow) -> None:
        """Receive one flagged window, in rank order."""
        ...

    def on_stats(self, stats: AnalysisStats) -> None:
        """Receive the run-wide statistics once, after all windows."""
        ...
