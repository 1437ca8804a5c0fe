"""
flowguard: rule-based DDoS detection over network-flow logs.

Public API (stable):
- DetectionConfig, ColumnMapping, load_config   (configuration)
- run_analysis, analyze_file, analyze_records   (orchestrates one run)
- RecordSourcePort, ResultSinkPort              (adapter interfaces)
- CsvFileSource, StreamingCsvSource, RecordListSource
- WindowAccumulator                             (incremental grouping)
- Rule, RuleEngine, DEFAULT_RULES               (rule registry)
- DTOs: LogRecord, WindowKey, WindowAggregate, Indicator, FlaggedWindow,
  AnalysisStats, AnalysisResult
- Errors: FlowguardError, ConfigurationError, SourceReadError

The rest of the application should wire sources and sinks through this
surface rather than importing internals.
"""

from __future__ import annotations

# Configuration
from .config import ColumnMapping, DetectionConfig, load_config

# Orchestration
from .orchestration.runner import analyze_file, analyze_records, run_analysis

# Ports
from .ports import RecordSourcePort, ResultSinkPort

# Adapters
from .intake.sources import CsvFileSource, RecordListSource, StreamingCsvSource

# Pipeline
from .pipeline.grouping import WindowAccumulator
from .pipeline.rules import DEFAULT_RULES, Rule, RuleEngine

# DTOs
from .dto import (
    AnalysisResult,
    AnalysisStats,
    FlaggedWindow,
    Indicator,
    LogRecord,
    WindowAggregate,
    WindowKey,
)

# Errors
from .errors import ConfigurationError, FlowguardError, SourceReadError

__all__ = [
    "ColumnMapping",
    "DetectionConfig",
    "load_config",
    "analyze_file",
    "analyze_records",
    "run_analysis",
    "RecordSourcePort",
    "ResultSinkPort",
    "CsvFileSource",
    "RecordListSource",
    "StreamingCsvSource",
    "WindowAccumulator",
    "DEFAULT_RULES",
    "Rule",
    "RuleEngine",
    "AnalysisResult",
    "AnalysisStats",
    "FlaggedWindow",
    "Indicator",
    "LogRecord",
    "WindowAggregate",
    "WindowKey",
    "ConfigurationError",
    "FlowguardError",
    "SourceReadError",
]
