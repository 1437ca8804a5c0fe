from __future__ import annotations

import csv
import json
from datetime import datetime, timezone

from conftest import make_record
from flowguard import analyze_file, analyze_records
from flowguard.report import build_pdf, build_pdf_bytes, build_summary_report, result_payload, save_results
from flowguard.sample import EDGE_CASE_ROWS, generate_sample_csv


def flagged_result():
    records = [make_record("192.168.1.100", i, 10, label="DrDoS_DNS") for i in range(60)]
    records += [make_record("203.0.113.5", i, 1) for i in range(5)]
    return analyze_records(records)


def test_summary_lists_stats_and_flagged_windows():
    text = build_summary_report(flagged_result())
    assert text.startswith("=== DDoS Analysis Summary ===")
    assert "Total log entries analyzed: 65" in text
    assert "Unique source IPs: 2" in text
    assert "Known DDoS attacks detected: 1" in text
    assert "Labeled attack entries: 1" in text
    assert "  high_frequency: 1" in text
    assert "1 suspicious entries detected:" in text
    assert "1. IP: 192.168.1.100 (Risk Score: 9)" in text
    assert "Requests: 600 (120.00 req/min)" in text
    assert "DrDoS_DNS attack detected (+5 risk)" in text


def test_summary_without_findings():
    text = build_summary_report(analyze_records([make_record()]))
    assert "No suspicious activity detected." in text


def test_saved_results_shape(tmp_path):
    out = save_results(flagged_result(), tmp_path / "out" / "results.json")
    data = json.loads(out.read_text(encoding="utf-8"))

    assert set(data) == {"timestamp", "summary", "analysis_results", "config"}
    assert data["config"] == {"high_frequency_threshold": 100.0, "medium_frequency_threshold": 50.0, "window_minutes": 5}
    (entry,) = data["analysis_results"]["flagged_entries"]
    assert entry["source_ip"] == "192.168.1.100"
    assert entry["has_known_ddos_attack"] is True
    assert len(entry["entries"]) == 5
    assert data["analysis_results"]["analysis_stats"]["total_entries"] == 65


def test_pdf_rendering(tmp_path):
    payload = result_payload(flagged_result())
    pdf = build_pdf_bytes(payload, "Test Report")
    assert pdf.startswith(b"%PDF")

    out = build_pdf(payload, tmp_path / "reports" / "r.pdf")
    assert out.read_bytes().startswith(b"%PDF")


def test_pdf_rendering_of_empty_payload():
    assert build_pdf_bytes({}, "Empty").startswith(b"%PDF")


def test_sample_generator(tmp_path):
    path = generate_sample_csv(tmp_path / "sample.csv", num_entries=40, seed=3)
    with path.open(encoding="utf-8", newline="") as f:
        rows = list(csv.reader(f))

    assert rows[0][0] == " Timestamp"
    assert len(rows) == 1 + 40 + len(EDGE_CASE_ROWS)
    assert rows[-len(EDGE_CASE_ROWS):] == [list(r) for r in EDGE_CASE_ROWS]


def test_sample_generator_is_reproducible(tmp_path):
    now = datetime(2024, 1, 16, tzinfo=timezone.utc)
    a = generate_sample_csv(tmp_path / "a.csv", num_entries=25, seed=9, now=now)
    b = generate_sample_csv(tmp_path / "b.csv", num_entries=25, seed=9, now=now)
    assert a.read_text(encoding="utf-8") == b.read_text(encoding="utf-8")


def test_sample_file_analyzes_with_three_rejections(tmp_path):
    path = generate_sample_csv(tmp_path / "sample.csv", num_entries=50, seed=1)
    result = analyze_file(path)
    # missing timestamp, missing source, missing destination
    assert result.stats.rows_rejected == 3
    assert result.stats.total_entries == 50 + len(EDGE_CASE_ROWS) - 3
