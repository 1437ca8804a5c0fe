"""
Record sources (RecordSourcePort adapters).

- CsvFileSource        whole-file: normalize everything, hand over one batch
- StreamingCsvSource   incremental: emit fixed-size batches as they fill
- RecordListSource     already-normalized records held in memory

Both CSV sources share one read path (check -> open -> rows -> normalize), so
whole-file and streamed runs see exactly the same records in the same order.
Read failures are translated to SourceReadError naming the source.
"""

from __future__ import annotations

import csv
import inspect
import logging
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional, Sequence

import zstandard  # type: ignore

from ..config import DetectionConfig
from ..dto import LogRecord, RowRejection
from ..errors import SourceReadError
from .csv_reader import iter_raw_rows
from .decompress import open_source_stream
from .normalizer import normalize_row
from .validator import check_source

logger = logging.getLogger(__name__)

# Failures that make the rest of the source unreadable.
_READ_ERRORS = (OSError, EOFError, UnicodeDecodeError, csv.Error, zstandard.ZstdError)


class _CsvReadPath:
    """Shared check/open/normalize path; counts rejected rows."""

    def __init__(self, path: str | os.PathLike, cfg: DetectionConfig) -> None:
        self.path = Path(path)
        self.cfg = cfg
        self.rows_rejected = 0
        self.rows_read = 0

    @contextmanager
    def _read_guard(self) -> Iterator[None]:
        try:
            yield
        except _READ_ERRORS as e:
            raise SourceReadError(
                str(self.path), f"{type(e).__name__}: {e}", row_index=self.rows_read + 1,
            ) from e

    def _records(self) -> Iterator[LogRecord]:
        comp = check_source(self.path)
        self.rows_rejected = 0
        self.rows_read = 0
        with self._read_guard():
            with open_source_stream(self.path, compressor=comp) as stream:
                for row_index, row in iter_raw_rows(stream):
                    self.rows_read = row_index
                    if isinstance(row, RowRejection):
                        self.rows_rejected += 1
                        continue
                    rec = normalize_row(row, self.cfg.columns, row_index)
                    if isinstance(rec, RowRejection):
                        self.rows_rejected += 1
                        continue
                    yield rec


class CsvFileSource(_CsvReadPath):
    """Whole-file source: materializes all valid records, yields them as one batch."""

    def load(self) -> List[LogRecord]:
        records = list(self._records())
        logger.info(
            "Parsed %d valid log entries from %s (%d rows read, %d rejected)",
            len(records), self.path, self.rows_read, self.rows_rejected,
        )
        return records

    def batches(self) -> Iterator[List[LogRecord]]:
        records = self.load()
        if records:
            yield records


class StreamingCsvSource(_CsvReadPath):
    """
    Streaming source for large inputs.

    Emits batches of `batch_size` normalized records as they fill, plus a
    final partial batch at end-of-input. `stop()` halts further emission and
    releases the file; no partial batch is flushed after a stop.

    One instance runs one pass at a time.
    """

    def __init__(
        self,
        path: str | os.PathLike,
        cfg: DetectionConfig,
        *,
        batch_size: Optional[int] = None,
    ) -> None:
        super().__init__(path, cfg)
        self.batch_size = int(batch_size or cfg.batch_size)
        if self.batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {self.batch_size}")
        self.total_emitted = 0
        self.batches_emitted = 0
        self._running = False
        self._stopped = False
        self._active: Optional[Iterator[List[LogRecord]]] = None

    @property
    def is_running(self) -> bool:
        return self._running

    def batches(self) -> Iterator[List[LogRecord]]:
        if self._running:
            raise RuntimeError(f"Streaming source {self.path} is already running")
        self._stopped = False
        self._active = self._emit()
        return self._active

    def _emit(self) -> Iterator[List[LogRecord]]:
        self._running = True
        self.total_emitted = 0
        self.batches_emitted = 0
        try:
            batch: List[LogRecord] = []
            for rec in self._records():
                if self._stopped:
                    return
                batch.append(rec)
                if len(batch) >= self.batch_size:
                    yield self._hand_over(batch)
                    batch = []
            if batch and not self._stopped:
                yield self._hand_over(batch)
            logger.info(
                "Streamed %d entries in %d batches from %s (%d rows read, %d rejected)",
                self.total_emitted, self.batches_emitted, self.path, self.rows_read, self.rows_rejected,
            )
        finally:
            self._running = False

    def _hand_over(self, batch: List[LogRecord]) -> List[LogRecord]:
        self.total_emitted += len(batch)
        self.batches_emitted += 1
        logger.debug("Emitting batch %d (%d records)", self.batches_emitted, len(batch))
        return batch

    def stop(self) -> None:
        """Stop emitting and release the underlying file."""
        self._stopped = True
        gen = self._active
        if gen is not None and inspect.getgeneratorstate(gen) == inspect.GEN_SUSPENDED:
            # Suspended at a yield: closing unwinds the open stream now.
            gen.close()
        logger.info("Streaming source %s stopped after %d entries", self.path, self.total_emitted)


class RecordListSource:
    """In-memory source over already-normalized records."""

    def __init__(self, records: Sequence[LogRecord], *, batch_size: Optional[int] = None) -> None:
        self._records = list(records)
        self.batch_size = batch_size
        self.rows_rejected = 0

    def batches(self) -> Iterator[List[LogRecord]]:
        if not self._records:
            return
        if not self.batch_size:
            yield list(self._records)
            return
        for start in range(0, len(self._records), self.batch_size):
            yield self._records[start:start + self.batch_size]
