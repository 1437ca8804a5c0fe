"""
Raw CSV row reader.

Yields (row_index, field_map) pairs from an open text stream, one raw row at
a time, without materializing the whole file. Values stay as raw strings;
typing and validation are the normalizer's job.

Implementation notes:
- Rows are pulled one by one from csv.reader, so the physical line number of
  every row is known when something is wrong with it.
- Header names are kept verbatim (CIC exports carry leading spaces);
  repeated names get a ".1", ".2", ... suffix.
- A line with more fields than the header is rejected in place: it still
  takes a row index, so later diagnostics point at the right row. Lines
  with fewer fields simply lack the trailing columns.
- Blank lines are skipped and do not count as rows.
"""

from __future__ import annotations

import csv
import logging
from typing import IO, Dict, Iterator, List, Tuple, Union

from ..dto import RowRejection

logger = logging.getLogger(__name__)

RawRow = Union[Dict[str, str], RowRejection]


def _dedupe(header: List[str]) -> List[str]:
    seen: Dict[str, int] = {}
    out = []
    for name in header:
        n = seen.get(name, 0)
        seen[name] = n + 1
        out.append(f"{name}.{n}" if n else name)
    return out


def iter_raw_rows(stream: IO[str]) -> Iterator[Tuple[int, RawRow]]:
    """
    Iterate raw rows from a CSV text stream.

    Yields
    ------
    (row_index, row) : Tuple[int, Dict[str, str] | RowRejection]
        1-based data-row index (header and blank lines excluded) and either the
        column -> raw value map or a RowRejection for a line with too many fields.

    Raises csv.Error when the stream cannot be tokenized at all.
    """
    reader = csv.reader(stream)
    header: List[str] = []
    for fields in reader:
        if any(f.strip() for f in fields):
            header = _dedupe(fields)
            break
    if not header:
        logger.warning("Source is empty; no rows to read")
        return

    width = len(header)
    row_index = 0
    for fields in reader:
        if not fields:
            continue
        row_index += 1
        if len(fields) > width:
            logger.warning(
                "Skipping malformed row %d (line %d: %d fields, expected %d)",
                row_index, reader.line_num, len(fields), width,
            )
            yield row_index, RowRejection(
                row_index=row_index,
                detail=f"line {reader.line_num}: {len(fields)} fields, expected {width}",
            )
            continue
        yield row_index, dict(zip(header, fields))
