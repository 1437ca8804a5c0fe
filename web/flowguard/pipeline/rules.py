"""
Unsupervised suspicion rules.

Each rule is a value-typed descriptor (id, weight, predicate, message) that
looks only at a read-only WindowView and a RuleContext compiled once from the
configuration. Rules are independent and additive: every rule is evaluated,
every rule that fires contributes its weight and message. New rules are added
by extending the registry, not by touching the scoring loop.

Canonical registry (in evaluation order):

    high_frequency            req/min >= high                      3
    medium_frequency          medium <= req/min < high             2
    suspicious_user_agent     UA contains a suspicious substring   2
    suspicious_source         source matches a private/loopback RE 1
    suspicious_response_codes any tallied code is suspicious       1
    path_diversity            distinct paths > threshold           1
    suspicious_methods        any tallied method is suspicious     1
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import Callable, FrozenSet, List, Mapping, Optional, Sequence, Tuple

from ..config import DetectionConfig
from ..dto import Indicator, WindowAggregate
from .windowing import request_frequency


@dataclass(frozen=True)
class WindowView:
    """Read-only snapshot of one aggregate, plus its request frequency."""
    source_ip: str
    window_index: int
    total_requests: int
    request_frequency: float
    paths: FrozenSet[str]
    user_agents: FrozenSet[str]
    response_codes: Mapping[str, int]
    methods: Mapping[str, int]
    labels: FrozenSet[str]
    has_known_attack: bool

    @classmethod
    def from_aggregate(cls, agg: WindowAggregate, window_minutes: int) -> "WindowView":
        return cls(
            source_ip=agg.source_ip,
            window_index=agg.window_index,
            total_requests=agg.total_requests,
            request_frequency=request_frequency(agg.total_requests, window_minutes),
            paths=frozenset(agg.paths),
            user_agents=frozenset(agg.user_agents),
            response_codes=MappingProxyType(dict(agg.response_codes)),
            methods=MappingProxyType(dict(agg.methods)),
            labels=frozenset(agg.labels),
            has_known_attack=agg.has_known_attack,
        )


@dataclass(frozen=True)
class RuleContext:
    """Configuration compiled for rule evaluation (lower-cased markers, compiled regexes)."""
    high_frequency: float
    medium_frequency: float
    user_agent_markers: Tuple[str, ...]
    ip_patterns: Tuple[re.Pattern, ...]
    response_codes: FrozenSet[str]
    methods: FrozenSet[str]
    path_diversity: int

    @classmethod
    def from_config(cls, cfg: DetectionConfig) -> "RuleContext":
        return cls(
            high_frequency=float(cfg.high_frequency_threshold),
            medium_frequency=float(cfg.medium_frequency_threshold),
            user_agent_markers=tuple(m.lower() for m in cfg.suspicious_user_agents),
            ip_patterns=tuple(re.compile(p) for p in cfg.suspicious_ip_patterns),
            response_codes=frozenset(cfg.suspicious_response_codes),
            methods=frozenset(cfg.suspicious_methods),
            path_diversity=int(cfg.path_diversity_threshold),
        )

    # --- helpers shared by predicates and messages ---

    def suspicious_agents(self, view: WindowView) -> List[str]:
        return sorted(
            ua for ua in view.user_agents
            if any(marker in ua.lower() for marker in self.user_agent_markers)
        )

    def is_suspicious_source(self, ip: str) -> bool:
        return any(p.match(ip) for p in self.ip_patterns)

    def suspicious_codes(self, view: WindowView) -> List[Tuple[str, int]]:
        return [(code, n) for code, n in view.response_codes.items() if code in self.response_codes]

    def suspicious_methods(self, view: WindowView) -> List[Tuple[str, int]]:
        return [(m, n) for m, n in view.methods.items() if m.upper() in self.methods]


Predicate = Callable[[WindowView, RuleContext], bool]
MessageFn = Callable[[WindowView, RuleContext], str]


@dataclass(frozen=True)
class Rule:
    rule_id: str
    weight: int
    predicate: Predicate
    message: MessageFn

    def evaluate(self, view: WindowView, ctx: RuleContext) -> Optional[Indicator]:
        if not self.predicate(view, ctx):
            return None
        return Indicator(rule_id=self.rule_id, message=self.message(view, ctx), weight=self.weight)


def _tally(items: Sequence[Tuple[str, int]]) -> str:
    return ", ".join(f"{k}({n})" for k, n in items)


DEFAULT_RULES: Tuple[Rule, ...] = (
    Rule(
        rule_id="high_frequency",
        weight=3,
        predicate=lambda v, c: v.request_frequency >= c.high_frequency,
        message=lambda v, c: f"High request frequency: {v.request_frequency:.2f} req/min",
    ),
    Rule(
        rule_id="medium_frequency",
        weight=2,
        predicate=lambda v, c: c.medium_frequency <= v.request_frequency < c.high_frequency,
        message=lambda v, c: f"Medium request frequency: {v.request_frequency:.2f} req/min",
    ),
    Rule(
        rule_id="suspicious_user_agent",
        weight=2,
        predicate=lambda v, c: bool(c.suspicious_agents(v)),
        message=lambda v, c: f"Suspicious user agents: {', '.join(c.suspicious_agents(v))}",
    ),
    Rule(
        rule_id="suspicious_source",
        weight=1,
        predicate=lambda v, c: c.is_suspicious_source(v.source_ip),
        message=lambda v, c: f"Suspicious IP pattern: {v.source_ip}",
    ),
    Rule(
        rule_id="suspicious_response_codes",
        weight=1,
        predicate=lambda v, c: bool(c.suspicious_codes(v)),
        message=lambda v, c: f"Suspicious response codes: {_tally(c.suspicious_codes(v))}",
    ),
    Rule(
        rule_id="path_diversity",
        weight=1,
        predicate=lambda v, c: len(v.paths) > c.path_diversity,
        message=lambda v, c: f"High path diversity: {len(v.paths)} unique paths",
    ),
    Rule(
        rule_id="suspicious_methods",
        weight=1,
        predicate=lambda v, c: bool(c.suspicious_methods(v)),
        message=lambda v, c: f"Suspicious methods: {_tally(c.suspicious_methods(v))}",
    ),
)


class RuleEngine:
    """Evaluates an ordered rule registry against window snapshots."""

    def __init__(self, cfg: DetectionConfig, rules: Sequence[Rule] = DEFAULT_RULES) -> None:
        ids = [r.rule_id for r in rules]
        if len(ids) != len(set(ids)):
            raise ValueError(f"Duplicate rule ids in registry: {ids}")
        self.rules: Tuple[Rule, ...] = tuple(rules)
        self.context = RuleContext.from_config(cfg)

    @property
    def rule_ids(self) -> Tuple[str, ...]:
        return tuple(r.rule_id for r in self.rules)

    def evaluate(self, view: WindowView) -> List[Indicator]:
        """Return the indicators of every rule that fires, in registry order."""
        fired: List[Indicator] = []
        for rule in self.rules:
            ind = rule.evaluate(view, self.context)
            if ind is not None:
                fired.append(ind)
        return fired
