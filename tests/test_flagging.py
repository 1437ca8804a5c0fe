from __future__ import annotations

from datetime import datetime, timezone

from conftest import BASE_TS, make_record
from flowguard.config import DetectionConfig
from flowguard.dto import AnalysisStats
from flowguard.pipeline.grouping import WindowAccumulator
from flowguard.pipeline.rules import DEFAULT_RULES
from flowguard.pipeline.flagging import score_windows

CFG = DetectionConfig()
NOW = datetime(2024, 2, 1, tzinfo=timezone.utc)


def score(records, cfg: DetectionConfig = CFG):
    acc = WindowAccumulator.from_config(cfg)
    acc.ingest(records)
    stats = AnalysisStats()
    flagged = score_windows(acc.finalize().values(), cfg, stats=stats, now=NOW)
    return flagged, stats


def test_risk_one_is_not_flagged():
    flagged, stats = score([make_record("10.0.0.1")])
    assert flagged == []
    assert stats.windows_evaluated == 1
    assert stats.rule_triggers["suspicious_source"] == 1


def test_risk_two_is_flagged():
    flagged, _ = score([make_record("10.0.0.1", response_code="503")])
    (fw,) = flagged
    assert fw.risk_score == 2
    assert fw.fired_rules == ("suspicious_source", "suspicious_response_codes")


def test_flagged_window_fields():
    records = [make_record("192.168.1.100", i, 2, label="DrDoS_DNS") for i in range(8)]
    (fw,) = score(records)[0]

    assert fw.source_ip == "192.168.1.100"
    assert fw.window_start == BASE_TS
    assert fw.generated_at == NOW
    assert fw.request_count == 16
    assert fw.request_frequency == 3.2
    assert fw.risk_score == 1 + 5
    assert fw.indicators == ("Suspicious IP pattern: 192.168.1.100", "DrDoS_DNS attack detected (+5 risk)")
    assert fw.has_known_attack
    assert fw.labels == ("DrDoS_DNS",)
    assert fw.unique_user_agents == 1
    assert fw.sample == tuple(records[:5])


def test_stats_count_every_rule_and_label_hits():
    _, stats = score([
        make_record("203.0.113.5", 0, 600),
        make_record("203.0.113.6", 0, 1, label="DrDoS_DNS"),
        make_record("203.0.113.7", 0, 1, label="Syn"),
    ])
    assert set(r.rule_id for r in DEFAULT_RULES) <= set(stats.rule_triggers)
    assert stats.rule_triggers["high_frequency"] == 1
    assert stats.rule_triggers["medium_frequency"] == 0
    assert stats.known_ddos_attacks == 1
    assert stats.labeled_attacks == 2
    assert stats.windows_evaluated == 3
    assert stats.flagged_windows == 2
    assert stats.rule_triggers["known_attack_label"] == 1


def test_label_overlay_count_present_without_hits():
    _, stats = score([make_record("203.0.113.5", 0, 1, label="BENIGN")])
    assert stats.rule_triggers["known_attack_label"] == 0
    assert set(stats.rule_triggers) == {r.rule_id for r in DEFAULT_RULES} | {"known_attack_label"}


def test_ranking_is_deterministic():
    records = [
        make_record("203.0.113.9", 0, 600),          # risk 3
        make_record("203.0.113.1", 0, 600),          # risk 3
        make_record("203.0.113.1", 900, 600),        # risk 3, later window
        make_record("10.0.0.9", 0, 600),             # risk 4
    ]
    flagged, _ = score(records)
    assert [(f.source_ip, f.risk_score) for f in flagged] == [
        ("10.0.0.9", 4),
        ("203.0.113.1", 3),
        ("203.0.113.1", 3),
        ("203.0.113.9", 3),
    ]
    assert flagged[1].window_index < flagged[2].window_index

    reversed_flagged, _ = score(list(reversed(records)))
    assert reversed_flagged == flagged


def test_flag_threshold_is_configurable():
    cfg = DetectionConfig(flag_threshold=4)
    flagged, stats = score([make_record("10.0.0.1", 0, 600), make_record("203.0.113.5", 0, 600)], cfg)
    assert [f.source_ip for f in flagged] == ["10.0.0.1"]
    assert stats.flagged_windows == 1
