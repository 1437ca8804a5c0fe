"""
Sample-data generator.

Writes a CIC-DDoS2019-style CSV (same header names, leading spaces included)
with a mix of benign and suspicious flows, followed by a fixed block of
malformed rows that exercise the normalizer's rejection and fallback paths.
"""

from __future__ import annotations

import csv
import logging
import os
import random
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

from .config import ColumnMapping

logger = logging.getLogger(__name__)

SUSPICIOUS_IPS = ("192.168.1.100", "10.0.0.50", "172.16.0.25")
NORMAL_IPS = ("203.0.113.1", "198.51.100.2", "192.0.2.3")
SUSPICIOUS_LABELS = ("DrDoS_DNS", "DrDoS_LDAP", "WebDDoS", "Syn", "UDP-lag")
NORMAL_LABELS = ("BENIGN", "Normal", "Legitimate")
DESTINATION_IP = "192.168.1.1"
SUSPICIOUS_SHARE = 0.3

# timestamp, source, destination, fwd packets, duration, length, label
EDGE_CASE_ROWS = (
    ("", "MISSING_IP", "10.0.0.1", "5", "0.150", "1024", "BENIGN"),
    ("2024-01-15T10:30:00Z", "", "10.0.0.1", "5", "0.150", "1024", "BENIGN"),
    ("2024-01-15T10:30:00Z", "192.168.1.100", "", "5", "0.150", "1024", "BENIGN"),
    ("2024-01-15T10:30:00Z", "999.999.999.999", "10.0.0.1", "5", "0.150", "1024", "BENIGN"),
    ("2024-01-15T10:30:00Z", "192.168.1.100", "10.0.0.1", "-10", "0.150", "1024", "BENIGN"),
    ("2024-01-15T10:30:00Z", "192.168.1.100", "10.0.0.1", "0", "0.150", "1024", "BENIGN"),
    ("2024-01-15T10:30:00Z", "192.168.1.100", "10.0.0.1", "5", "0.150", "notanumber", "BENIGN"),
    ("2024-01-15T10:30:00Z", "192.168.1.100", "10.0.0.1", "5", "notanumber", "1024", "BENIGN"),
)


def generate_sample_csv(
    path: str | os.PathLike,
    num_entries: int = 100,
    seed: Optional[int] = None,
    *,
    now: Optional[datetime] = None,
) -> Path:
    """
    Write `num_entries` generated rows plus the edge-case block to `path`.

    Timestamps fall within the 24 hours before `now` (default: current UTC
    time). Passing `seed` makes the generated rows reproducible.
    """
    if num_entries < 0:
        raise ValueError(f"num_entries must be >= 0, got {num_entries}")
    rng = random.Random(seed)
    now = now or datetime.now(timezone.utc)
    cols = ColumnMapping()
    header = [
        cols.timestamp, cols.source_ip, cols.destination_ip, cols.request_count,
        cols.flow_duration, cols.total_bytes, cols.label,
    ]

    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    with out.open("w", encoding="utf-8", newline="") as f:
        writer = csv.writer(f, lineterminator="\n")
        writer.writerow(header)
        for _ in range(num_entries):
            ts = now - timedelta(seconds=rng.random() * 24 * 60 * 60)
            suspicious = rng.random() < SUSPICIOUS_SHARE
            writer.writerow([
                ts.strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z",
                rng.choice(SUSPICIOUS_IPS if suspicious else NORMAL_IPS),
                DESTINATION_IP,
                rng.randint(50, 99) if suspicious else rng.randint(1, 10),
                f"{rng.random() * 2:.3f}",
                rng.randint(100, 10_099),
                rng.choice(SUSPICIOUS_LABELS if suspicious else NORMAL_LABELS),
            ])
        writer.writerows(EDGE_CASE_ROWS)

    logger.info("Sample data generated: %s (%d rows + %d edge cases)", out, num_entries, len(EDGE_CASE_ROWS))
    return out
