from __future__ import annotations

import gzip

import pytest
import zstandard

from conftest import CIC_HEADER, cic_row
from flowguard.config import DetectionConfig
from flowguard.errors import SourceReadError
from flowguard.intake.sources import CsvFileSource, RecordListSource, StreamingCsvSource
from flowguard.intake.validator import check_source, infer_compressor

CFG = DetectionConfig()


def csv_text(rows) -> str:
    lines = [",".join(CIC_HEADER)] + [",".join(str(v) for v in r) for r in rows]
    return "\n".join(lines) + "\n"


def test_whole_file_source_skips_malformed_rows(csv_writer):
    path = csv_writer([
        cic_row(offset_s=0),
        ["", "MISSING_IP", "10.0.0.1", 5, "0.150", 1024, "BENIGN"],
        cic_row(offset_s=1),
        ["2024-01-15T10:30:00Z", "", "10.0.0.1", 5, "0.150", 1024, "BENIGN"],
    ])
    source = CsvFileSource(path, CFG)
    records = source.load()

    assert [r.row_index for r in records] == [1, 3]
    assert source.rows_rejected == 2
    assert source.rows_read == 4


def test_ragged_lines_are_skipped(tmp_path):
    path = tmp_path / "ragged.csv"
    too_long = cic_row(offset_s=1) + ["extra", "fields"]
    too_short = ["2024-01-15T10:30:00Z", "1.2.3.4"]
    path.write_text(csv_text([cic_row(offset_s=0), too_long, too_short, cic_row(offset_s=2)]), encoding="utf-8")

    source = CsvFileSource(path, CFG)
    records = source.load()
    assert [r.timestamp.second for r in records] == [0, 2]
    assert [r.row_index for r in records] == [1, 4]
    # long line rejected by the reader; short one padded, then rejected by the normalizer
    assert source.rows_rejected == 2
    assert source.rows_read == 4


def test_rows_after_a_ragged_line_keep_their_index(tmp_path, caplog):
    path = tmp_path / "ragged.csv"
    too_long = cic_row(offset_s=1) + ["x", "y"]
    no_source = ["2024-01-15T10:30:00Z", "", "10.0.0.1", 5, "0.150", 1024, "BENIGN"]
    path.write_text(csv_text([cic_row(offset_s=0), too_long, no_source, cic_row(offset_s=3)]), encoding="utf-8")

    with caplog.at_level("WARNING", logger="flowguard"):
        source = CsvFileSource(path, CFG)
        records = source.load()

    assert [r.row_index for r in records] == [1, 4]
    assert source.rows_rejected == 2
    messages = [r.getMessage() for r in caplog.records]
    assert "Skipping malformed row 2 (line 3: 9 fields, expected 7)" in messages
    assert "Skipping malformed row 3 (missing: source_ip)" in messages


def test_ragged_first_data_line_is_rejected(tmp_path):
    path = tmp_path / "ragged.csv"
    path.write_text(csv_text([cic_row(offset_s=0) + ["extra"], cic_row(offset_s=1)]), encoding="utf-8")

    streamed = StreamingCsvSource(path, CFG, batch_size=1)
    batches = list(streamed.batches())
    assert [[r.row_index for r in b] for b in batches] == [[2]]
    assert streamed.rows_rejected == 1


def test_header_only_file_yields_no_batches(csv_writer):
    path = csv_writer([])
    assert list(CsvFileSource(path, CFG).batches()) == []


def test_gzip_and_zstd_inputs(tmp_path):
    rows = [cic_row(offset_s=i) for i in range(5)]
    gz_path = tmp_path / "flows.csv.gz"
    with gzip.open(gz_path, "wt", encoding="utf-8") as f:
        f.write(csv_text(rows))
    zst_path = tmp_path / "flows.csv.zst"
    zst_path.write_bytes(zstandard.ZstdCompressor().compress(csv_text(rows).encode("utf-8")))

    assert check_source(gz_path) == "gzip"
    assert check_source(zst_path) == "zstd"
    assert len(CsvFileSource(gz_path, CFG).load()) == 5
    assert len(CsvFileSource(zst_path, CFG).load()) == 5


def test_bad_magic_is_a_source_error(tmp_path):
    path = tmp_path / "flows.csv.gz"
    path.write_text("not gzip at all", encoding="utf-8")
    with pytest.raises(SourceReadError) as exc:
        CsvFileSource(path, CFG).load()
    assert exc.value.source == str(path)


def test_missing_file_is_a_source_error(tmp_path):
    with pytest.raises(SourceReadError) as exc:
        list(CsvFileSource(tmp_path / "absent.csv", CFG).batches())
    assert "absent.csv" in str(exc.value)


def test_truncated_gzip_surfaces_as_source_error(tmp_path):
    path = tmp_path / "cut.csv.gz"
    payload = gzip.compress(csv_text([cic_row(offset_s=i) for i in range(2000)]).encode("utf-8"))
    path.write_bytes(payload[: len(payload) // 2])
    source = CsvFileSource(path, CFG)
    with pytest.raises(SourceReadError) as exc:
        source.load()
    assert exc.value.row_index == source.rows_read + 1
    assert f"near row {exc.value.row_index}" in str(exc.value)


def test_infer_compressor():
    assert infer_compressor("a.csv") == "none"
    assert infer_compressor("a.csv.gz") == "gzip"
    assert infer_compressor("a.csv.zst") == "zstd"


def test_streaming_emits_full_batches_then_remainder(csv_writer):
    path = csv_writer([cic_row(offset_s=i) for i in range(25)])
    source = StreamingCsvSource(path, CFG, batch_size=10)
    sizes = [len(b) for b in source.batches()]

    assert sizes == [10, 10, 5]
    assert source.total_emitted == 25
    assert source.batches_emitted == 3
    assert not source.is_running


def test_streaming_preserves_record_order(csv_writer):
    path = csv_writer([cic_row(offset_s=i) for i in range(7)])
    streamed = [r for b in StreamingCsvSource(path, CFG, batch_size=3).batches() for r in b]
    assert streamed == CsvFileSource(path, CFG).load()


def test_stop_halts_emission_without_flushing(csv_writer):
    path = csv_writer([cic_row(offset_s=i) for i in range(25)])
    source = StreamingCsvSource(path, CFG, batch_size=10)
    batches = source.batches()

    first = next(batches)
    assert len(first) == 10
    source.stop()

    assert list(batches) == []
    assert source.total_emitted == 10
    assert not source.is_running


def test_streaming_source_is_not_reentrant(csv_writer):
    path = csv_writer([cic_row(offset_s=i) for i in range(5)])
    source = StreamingCsvSource(path, CFG, batch_size=2)
    batches = source.batches()
    next(batches)
    with pytest.raises(RuntimeError):
        source.batches()
    source.stop()


def test_record_list_source_slices():
    records = list(range(7))
    assert [len(b) for b in RecordListSource(records, batch_size=3).batches()] == [3, 3, 1]
    assert [len(b) for b in RecordListSource(records).batches()] == [7]
    assert list(RecordListSource([]).batches()) == []
