from __future__ import annotations

from datetime import datetime, timezone

import pytest

from conftest import make_record
from flowguard.config import DetectionConfig
from flowguard.dto import UNKNOWN, WindowKey
from flowguard.pipeline.grouping import WindowAccumulator
from flowguard.pipeline.windowing import request_frequency, window_index, window_start


def test_window_index_is_floor_of_epoch_over_window():
    ts = datetime(2024, 1, 15, 10, 34, 59, tzinfo=timezone.utc)
    assert window_index(ts, 5) == int(ts.timestamp()) // 300
    assert window_index(ts.replace(tzinfo=None), 5) == window_index(ts, 5)
    assert window_start(window_index(ts, 5), 5) == datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)


def test_request_frequency_uses_configured_window():
    assert request_frequency(500, 5) == 100.0
    assert request_frequency(120, 5) == 24.0


def test_records_land_in_exactly_one_window_and_totals_match():
    records = [
        make_record("203.0.113.5", 0, 3),
        make_record("203.0.113.5", 299, 4),   # same window
        make_record("203.0.113.5", 300, 5),   # next window
        make_record("198.51.100.2", 10, 7),
    ]
    acc = WindowAccumulator(window_minutes=5)
    assert acc.ingest(records) == 4
    windows = acc.finalize()

    assert len(windows) == 3
    assert sum(len(a.records) for a in windows.values()) == len(records)
    for agg in windows.values():
        assert agg.total_requests == sum(r.request_count for r in agg.records)

    first = windows[WindowKey("203.0.113.5", window_index(records[0].timestamp, 5))]
    assert first.total_requests == 7
    assert acc.total_records == 4
    assert acc.source_ips == {"203.0.113.5", "198.51.100.2"}


def test_tallies_are_volume_weighted_and_sentinels_skipped():
    acc = WindowAccumulator(window_minutes=5)
    acc.ingest([
        make_record(request_count=10, response_code="503", method="HEAD", path="/a", user_agent="curl/7.68"),
        make_record(request_count=2, response_code="503", method="GET", path="/b", user_agent="Mozilla/5.0"),
        make_record(request_count=1),
    ])
    (agg,) = acc.finalize().values()

    assert agg.response_codes == {"503": 12}
    assert agg.methods == {"HEAD": 10, "GET": 2}
    # path and user-agent sets keep the sentinel
    assert agg.paths == {"/a", "/b", UNKNOWN}
    assert agg.user_agents == {"curl/7.68", "Mozilla/5.0", UNKNOWN}


def test_known_label_match_is_case_insensitive_exact():
    acc = WindowAccumulator(window_minutes=5, known_labels=["DrDoS_DNS", "Syn"])
    acc.ingest([make_record(label="drdos_dns"), make_record(label="BENIGN")])
    (agg,) = acc.finalize().values()
    assert agg.has_known_attack
    assert agg.labels == {"drdos_dns", "BENIGN"}

    acc = WindowAccumulator(window_minutes=5, known_labels=["Syn"])
    acc.ingest([make_record(label="Synthetic"), make_record(label=UNKNOWN)])
    (agg,) = acc.finalize().values()
    assert not agg.has_known_attack
    assert agg.labels == {"Synthetic"}


def test_batched_ingest_matches_single_ingest():
    records = [make_record(f"203.0.113.{i % 3}", i * 7, 1 + i % 4, label=f"L{i % 2}") for i in range(200)]

    whole = WindowAccumulator(window_minutes=5)
    whole.ingest(records)
    batched = WindowAccumulator(window_minutes=5)
    for start in range(0, len(records), 13):
        batched.ingest(records[start:start + 13])

    a, b = whole.finalize(), batched.finalize()
    assert a.keys() == b.keys()
    for key in a:
        assert a[key].total_requests == b[key].total_requests
        assert a[key].records == b[key].records
        assert a[key].labels == b[key].labels


def test_shard_merge_is_order_independent():
    records = [make_record(f"10.0.0.{i % 4}", i * 11, 2, method="GET") for i in range(80)]
    left, right = records[:30], records[30:]

    def merged(first, second):
        acc_a = WindowAccumulator(window_minutes=5)
        acc_a.ingest(first)
        acc_b = WindowAccumulator(window_minutes=5)
        acc_b.ingest(second)
        acc_a.merge(acc_b)
        return acc_a

    ab, ba = merged(left, right).finalize(), merged(right, left).finalize()
    assert ab.keys() == ba.keys()
    for key in ab:
        assert ab[key].total_requests == ba[key].total_requests
        assert ab[key].methods == ba[key].methods
        assert sorted(r.timestamp for r in ab[key].records) == sorted(r.timestamp for r in ba[key].records)


def test_merge_rejects_different_window_sizes():
    with pytest.raises(ValueError):
        WindowAccumulator(window_minutes=5).merge(WindowAccumulator(window_minutes=10))


def test_finalized_accumulator_is_closed():
    acc = WindowAccumulator.from_config(DetectionConfig())
    acc.ingest([make_record()])
    acc.finalize()
    with pytest.raises(RuntimeError):
        acc.ingest([make_record()])


def test_non_positive_window_rejected():
    with pytest.raises(ValueError):
        WindowAccumulator(window_minutes=0)
