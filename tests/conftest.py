from __future__ import annotations

import csv
import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Iterable, List, Sequence

import pytest

from flowguard.config import ColumnMapping
from flowguard.dto import LogRecord

# 2024-01-15 10:30:00 UTC sits exactly on a 5-minute boundary.
BASE_TS = datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)

CIC_HEADER = [
    " Timestamp",
    " Source IP",
    " Destination IP",
    " Total Fwd Packets",
    " Flow Duration",
    "Total Length of Fwd Packets",
    " Label",
]


def make_record(
    source_ip: str = "203.0.113.5",
    offset_s: float = 0.0,
    request_count: int = 1,
    **fields,
) -> LogRecord:
    return LogRecord(
        timestamp=BASE_TS + timedelta(seconds=offset_s),
        source_ip=source_ip,
        destination_ip=fields.pop("destination_ip", "192.0.2.10"),
        request_count=request_count,
        **fields,
    )


def write_cic_csv(path: Path, rows: Iterable[Sequence[object]], header: Sequence[str] = CIC_HEADER) -> Path:
    with path.open("w", encoding="utf-8", newline="") as f:
        writer = csv.writer(f, lineterminator="\n")
        writer.writerow(header)
        writer.writerows(rows)
    return path


def cic_row(source_ip: str = "203.0.113.5", offset_s: float = 0.0, packets: int = 1, label: str = "BENIGN") -> List[object]:
    ts = (BASE_TS + timedelta(seconds=offset_s)).strftime("%Y-%m-%dT%H:%M:%SZ")
    return [ts, source_ip, "192.0.2.10", packets, "0.150", "1024", label]


@pytest.fixture
def columns() -> ColumnMapping:
    return ColumnMapping()


@pytest.fixture
def record_factory():
    return make_record


@pytest.fixture
def csv_writer(tmp_path):
    def _write(rows, name: str = "flows.csv", header: Sequence[str] = CIC_HEADER) -> Path:
        return write_cic_csv(tmp_path / name, rows, header)

    return _write


@pytest.fixture(autouse=True)
def _restore_loggers():
    # The CLI and the app factory install their own handlers and stop
    # propagation; put things back so caplog sees later records.
    yield
    for name in ("flowguard", "advisor", "dashboard"):
        logger = logging.getLogger(name)
        for h in list(logger.handlers):
            logger.removeHandler(h)
            h.close()
        logger.propagate = True
        logger.setLevel(logging.NOTSET)
