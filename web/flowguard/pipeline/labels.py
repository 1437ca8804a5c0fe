"""
Supervised overlay: scoring from ground-truth labels.

Kept apart from the unsupervised rules so both can be tested and tuned on
their own; the flagging stage composes them.

- A distinct label containing a critical family marker (e.g. DrDoS_DNS)
  adds `critical_label_weight` and a dedicated indicator, once per label.
- Any distinct label other than the benign one counts as a labeled attack
  entry. This feeds statistics only, never the score.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from ..config import DetectionConfig
from ..dto import Indicator
from .rules import WindowView

KNOWN_ATTACK_RULE = "known_attack_label"


@dataclass(frozen=True)
class LabelVerdict:
    indicators: Tuple[Indicator, ...] = ()
    known_attack_hits: int = 0
    labeled_attacks: int = 0

    @property
    def risk(self) -> int:
        return sum(i.weight for i in self.indicators)


class LabelEvaluator:
    def __init__(self, cfg: DetectionConfig) -> None:
        self.markers = tuple(cfg.critical_label_markers)
        self.weight = int(cfg.critical_label_weight)
        self.benign = cfg.benign_label.strip().casefold()

    def evaluate(self, view: WindowView) -> LabelVerdict:
        indicators = []
        hits = 0
        labeled = 0
        for label in sorted(view.labels):
            marker = next((m for m in self.markers if m in label), None)
            if marker is not None:
                indicators.append(
                    Indicator(
                        rule_id=KNOWN_ATTACK_RULE,
                        message=f"{marker} attack detected (+{self.weight} risk)",
                        weight=self.weight,
                    )
                )
                hits += 1
            if label.strip().casefold() != self.benign:
                labeled += 1
        return LabelVerdict(indicators=tuple(indicators), known_attack_hits=hits, labeled_attacks=labeled)
