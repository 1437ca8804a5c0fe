"""
Scoring, flagging and ranking.

Responsibilities:
- Run the rule engine and the label evaluator over each finalized aggregate.
- Sum weights into a risk score; keep windows at or above `flag_threshold`.
- Record per-rule trigger counts and label counters in AnalysisStats.
- Rank flagged windows by (-risk, source_ip, window_index) so output order
  never depends on mapping iteration order.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Sequence

from ..config import DetectionConfig
from ..dto import AnalysisStats, FlaggedWindow, WindowAggregate
from .labels import KNOWN_ATTACK_RULE, LabelEvaluator
from .rules import Rule, RuleEngine, WindowView
from .windowing import window_start

logger = logging.getLogger(__name__)


def rank_key(w: FlaggedWindow):
    return (-w.risk_score, w.source_ip, w.window_index)


def rank_flagged(windows: Iterable[FlaggedWindow]) -> List[FlaggedWindow]:
    """Order flagged windows by descending risk, then source address, then window index."""
    return sorted(windows, key=rank_key)


class WindowScorer:
    """
    Composes the unsupervised rules and the supervised label overlay.

    One scorer per run: `score()` mutates the AnalysisStats it was given.
    """

    def __init__(
        self,
        cfg: DetectionConfig,
        stats: AnalysisStats,
        *,
        rules: Optional[Sequence[Rule]] = None,
        now: Optional[datetime] = None,
    ) -> None:
        self.cfg = cfg
        self.stats = stats
        self.engine = RuleEngine(cfg) if rules is None else RuleEngine(cfg, rules)
        self.labels = LabelEvaluator(cfg)
        self.now = now or datetime.now(timezone.utc)

    def score(self, agg: WindowAggregate) -> Optional[FlaggedWindow]:
        """Evaluate one aggregate; returns a FlaggedWindow when it crosses the threshold."""
        view = WindowView.from_aggregate(agg, self.cfg.window_minutes)
        fired = self.engine.evaluate(view)
        verdict = self.labels.evaluate(view)

        self.stats.windows_evaluated += 1
        for ind in fired:
            self.stats.record_trigger(ind.rule_id)
        if verdict.known_attack_hits:
            self.stats.known_ddos_attacks += verdict.known_attack_hits
            self.stats.rule_triggers[KNOWN_ATTACK_RULE] = (
                self.stats.rule_triggers.get(KNOWN_ATTACK_RULE, 0) + verdict.known_attack_hits
            )
        self.stats.labeled_attacks += verdict.labeled_attacks

        indicators = list(fired) + list(verdict.indicators)
        risk = sum(i.weight for i in indicators)
        if risk < self.cfg.flag_threshold:
            return None

        return FlaggedWindow(
            source_ip=view.source_ip,
            window_index=view.window_index,
            window_start=window_start(view.window_index, self.cfg.window_minutes),
            generated_at=self.now,
            request_count=view.total_requests,
            request_frequency=view.request_frequency,
            risk_score=risk,
            indicators=tuple(i.message for i in indicators),
            fired_rules=tuple(i.rule_id for i in indicators),
            unique_paths=len(view.paths),
            unique_user_agents=len(view.user_agents),
            response_codes=dict(sorted(view.response_codes.items())),
            methods=dict(sorted(view.methods.items())),
            labels=tuple(sorted(view.labels)),
            has_known_attack=view.has_known_attack or verdict.known_attack_hits > 0,
            sample=tuple(agg.records[: self.cfg.sample_size]),
        )


def score_windows(
    windows: Iterable[WindowAggregate],
    cfg: DetectionConfig,
    *,
    stats: AnalysisStats,
    rules: Optional[Sequence[Rule]] = None,
    now: Optional[datetime] = None,
) -> List[FlaggedWindow]:
    """
    Score every window and return the flagged ones, ranked.

    Every rule id in the registry, plus the known-attack label overlay,
    appears in `stats.rule_triggers`, with 0 when it never fired.
    """
    scorer = WindowScorer(cfg, stats, rules=rules, now=now)
    for rule_id in (*scorer.engine.rule_ids, KNOWN_ATTACK_RULE):
        stats.rule_triggers.setdefault(rule_id, 0)

    flagged: List[FlaggedWindow] = []
    for agg in windows:
        fw = scorer.score(agg)
        if fw is not None:
            flagged.append(fw)

    ranked = rank_flagged(flagged)
    stats.flagged_windows = len(ranked)
    logger.info(
        "Scored %d windows, %d flagged (threshold %d)",
        stats.windows_evaluated, stats.flagged_windows, cfg.flag_threshold,
    )
    return ranked
