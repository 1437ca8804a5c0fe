"""
Exception types raised by the analysis pipeline.

Row-level defects are NOT exceptions: they become RowRejection values and
are skipped. Only configuration problems and unreadable sources stop a run.
"""

from __future__ import annotations

from typing import Optional


class FlowguardError(Exception):
    """Base class for all pipeline errors."""


class ConfigurationError(FlowguardError, ValueError):
    """Static configuration is invalid; raised before any record is read."""


class SourceReadError(FlowguardError):
    """
    The input source could not be read (missing file, bad compression,
    undecodable bytes, broken CSV stream). Terminal for the run.
    """

    def __init__(self, source: str, detail: str, *, row_index: Optional[int] = None) -> None:
        self.source = str(source)
        self.detail = detail
        self.row_index = row_index
        where = f"{self.source} (near row {row_index})" if row_index is not None else self.source
        super().__init__(f"Failed to read {where}: {detail}")
