"""
Data Transfer Objects (DTOs) used across the scoring pipeline.

These are intentionally small, immutable (where sensible), and independent
of any I/O or parsing libraries.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Set, Tuple

if TYPE_CHECKING:
    from .config import DetectionConfig

# Sentinel for optional fields the source format does not supply.
UNKNOWN = "unknown"
# Cell values (compared case-insensitively) that mean "not supplied".
MISSING_VALUES = frozenset({UNKNOWN, "n/a"})


def is_missing(value: Optional[str]) -> bool:
    return not value or value.strip().lower() in MISSING_VALUES


# === Normalized input row ===
@dataclass(frozen=True)
class LogRecord:
    """One normalized flow-log row. Required fields are always populated."""
    timestamp: datetime         # tz-aware, UTC
    source_ip: str
    destination_ip: str
    request_count: int = 1      # forward packets / requests; always >= 1
    duration: float = 0.0       # flow duration, >= 0
    byte_count: float = 0.0     # total forward length, >= 0
    label: str = UNKNOWN
    user_agent: str = UNKNOWN
    response_code: str = UNKNOWN
    method: str = UNKNOWN
    path: str = UNKNOWN
    row_index: int = 0          # 1-based position in the source, 0 when built in memory

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["timestamp"] = self.timestamp.isoformat()
        return d


@dataclass(frozen=True)
class RowRejection:
    """A raw row that could not become a LogRecord."""
    row_index: int
    missing: Tuple[str, ...] = ()
    detail: Optional[str] = None

    @property
    def reason(self) -> str:
        if self.detail:
            return self.detail
        return f"missing: {', '.join(self.missing)}"


# === Grouping key ===
@dataclass(frozen=True, order=True)
class WindowKey:
    source_ip: str
    window_index: int           # floor(epoch_seconds / window_seconds)


# === Rolling aggregate (mutable during build) ===
@dataclass
class WindowAggregate:
    """In-memory accumulator for one (source, window) bucket."""
    key: WindowKey
    records: List[LogRecord] = field(default_factory=list)
    total_requests: int = 0
    paths: Set[str] = field(default_factory=set)
    user_agents: Set[str] = field(default_factory=set)
    response_codes: Dict[str, int] = field(default_factory=dict)   # volume-weighted
    methods: Dict[str, int] = field(default_factory=dict)          # volume-weighted
    labels: Set[str] = field(default_factory=set)
    has_known_attack: bool = False

    @property
    def source_ip(self) -> str:
        return self.key.source_ip

    @property
    def window_index(self) -> int:
        return self.key.window_index


# === Rule output ===
@dataclass(frozen=True)
class Indicator:
    rule_id: str
    message: str
    weight: int


# === Final immutable record for emission ===
@dataclass(frozen=True)
class FlaggedWindow:
    source_ip: str
    window_index: int
    window_start: datetime
    generated_at: datetime
    request_count: int
    request_frequency: float                # requests per configured window-minute
    risk_score: int
    indicators: Tuple[str, ...]             # explanation strings, rule order then label order
    fired_rules: Tuple[str, ...]            # rule ids, same order as indicators
    unique_paths: int
    unique_user_agents: int
    response_codes: Dict[str, int]
    methods: Dict[str, int]
    labels: Tuple[str, ...]
    has_known_attack: bool
    sample: Tuple[LogRecord, ...]           # first N contributing records, encounter order

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source_ip": self.source_ip,
            "window_index": self.window_index,
            "window_start": self.window_start.isoformat(),
            "timestamp": self.generated_at.isoformat(),
            "request_count": self.request_count,
            "request_frequency": self.request_frequency,
            "risk_score": self.risk_score,
            "suspicious_indicators": list(self.indicators),
            "fired_rules": list(self.fired_rules),
            "unique_paths": self.unique_paths,
            "unique_user_agents": self.unique_user_agents,
            "response_codes": dict(self.response_codes),
            "methods": dict(self.methods),
            "labels": list(self.labels),
            "has_known_ddos_attack": self.has_known_attack,
            "entries": [r.to_dict() for r in self.sample],
        }


# === Run-wide counters ===
@dataclass
class AnalysisStats:
    total_entries: int = 0
    unique_ips: int = 0
    rows_rejected: int = 0
    windows_evaluated: int = 0
    flagged_windows: int = 0
    rule_triggers: Dict[str, int] = field(default_factory=dict)
    known_ddos_attacks: int = 0
    labeled_attacks: int = 0

    def record_trigger(self, rule_id: str) -> None:
        self.rule_triggers[rule_id] = self.rule_triggers.get(rule_id, 0) + 1

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["rule_triggers"] = dict(sorted(self.rule_triggers.items()))
        return d


@dataclass(frozen=True)
class AnalysisResult:
    flagged: List[FlaggedWindow]
    stats: AnalysisStats
    config: "DetectionConfig"
    source: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source,
            "flagged_entries": [f.to_dict() for f in self.flagged],
            "analysis_stats": self.stats.to_dict(),
            "analysis_config": self.config.model_dump(mode="json"),
        }
