"""
Configuration schema for the DDoS scoring pipeline.

Everything the engine consumes is static input: window size, frequency
thresholds, suspicious markers and the CSV column mapping. Nothing is
discovered at runtime and no value that changes detection semantics is
silently defaulted when invalid.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .errors import ConfigurationError


class ColumnMapping(BaseModel):
    """
    Raw column names for each LogRecord field.

    Defaults follow the CIC-DDoS2019 flow exports, whose headers carry a
    leading space. Optional application-layer columns are None when the
    source format does not provide them.
    """

    model_config = ConfigDict(frozen=True)

    timestamp: str = " Timestamp"
    source_ip: str = " Source IP"
    destination_ip: str = " Destination IP"
    request_count: str = " Total Fwd Packets"
    flow_duration: str = " Flow Duration"
    total_bytes: str = "Total Length of Fwd Packets"
    label: str = " Label"

    user_agent: str | None = None
    response_code: str | None = None
    method: str | None = None
    path: str | None = None


class DetectionConfig(BaseModel):
    """
    Centralized, validated configuration for one analysis run.
    """

    model_config = ConfigDict(frozen=True)

    # === Windowing ===
    window_minutes: int = Field(
        default=5,
        gt=0,
        description="Tumbling window length in minutes; also the frequency divisor.",
    )

    # === Frequency rules ===
    high_frequency_threshold: float = Field(
        default=100.0,
        gt=0,
        description="Requests per window-minute at or above which 'high frequency' fires.",
    )
    medium_frequency_threshold: float = Field(
        default=50.0,
        gt=0,
        description="Lower bound of the 'medium frequency' band [medium, high).",
    )

    # === Marker rules ===
    suspicious_user_agents: tuple[str, ...] = Field(
        default=(
            "bot",
            "crawler",
            "spider",
            "scraper",
            "curl",
            "wget",
            "python",
            "java",
            "go-http-client",
            "okhttp",
            "requests",
            "urllib",
            "scrapy",
        ),
        description="Case-insensitive substrings that mark a user agent as automated.",
    )
    suspicious_ip_patterns: tuple[str, ...] = Field(
        default=(
            r"^10\.",
            r"^172\.(1[6-9]|2[0-9]|3[0-1])\.",
            r"^192\.168\.",
            r"^127\.",
            r"^0\.0\.0\.0",
            r"^255\.255\.255\.255",
        ),
        description="Regexes for private, loopback and broadcast source addresses.",
    )
    suspicious_response_codes: tuple[str, ...] = Field(
        default=("429", "503", "502", "504"),
        description="Response codes typical of an overloaded or rate-limiting server.",
    )
    suspicious_methods: tuple[str, ...] = Field(
        default=("HEAD", "OPTIONS", "TRACE", "CONNECT"),
        description="HTTP methods rarely used by regular clients.",
    )
    path_diversity_threshold: int = Field(
        default=50,
        ge=0,
        description="'Path diversity' fires when a window has MORE distinct paths than this.",
    )

    # === Supervised overlay ===
    known_ddos_labels: tuple[str, ...] = Field(
        default=(
            "DrDoS_DNS",
            "DrDoS_LDAP",
            "DrDoS_MSSQL",
            "DrDoS_NetBIOS",
            "DrDoS_NTP",
            "DrDoS_SNMP",
            "DrDoS_SSDP",
            "DrDoS_UDP",
            "DrDoS_WebDDoS",
            "Syn",
            "TFTP",
            "UDP",
            "UDP-lag",
            "WebDDoS",
            "LDAP",
            "MSSQL",
            "NetBIOS",
            "NTP",
            "SNMP",
            "SSDP",
        ),
        description="Ground-truth labels (exact, case-insensitive) that set the known-attack flag.",
    )
    critical_label_markers: tuple[str, ...] = Field(
        default=("DrDoS_DNS",),
        description="Highest-severity family markers; a label containing one adds critical_label_weight.",
    )
    critical_label_weight: int = Field(default=5, ge=1)
    benign_label: str = Field(
        default="BENIGN",
        description="Label value that does NOT count as a labeled attack entry.",
    )

    # === Flagging / output ===
    flag_threshold: int = Field(
        default=2,
        ge=1,
        description="Minimum total risk score for a window to be reported.",
    )
    sample_size: int = Field(
        default=5,
        ge=0,
        description="Number of contributing records kept per flagged window for audit.",
    )

    # === Intake ===
    batch_size: int = Field(
        default=1000,
        ge=1,
        description="Records per batch emitted by the streaming source.",
    )
    columns: ColumnMapping = Field(default_factory=ColumnMapping)

    @field_validator("suspicious_ip_patterns")
    @classmethod
    def _patterns_compile(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        for pattern in value:
            try:
                re.compile(pattern)
            except re.error as e:
                raise ValueError(f"invalid regex {pattern!r}: {e}") from e
        return value

    @field_validator("suspicious_response_codes", mode="before")
    @classmethod
    def _codes_as_text(cls, value: Any) -> Any:
        # YAML hands 429 over as an int; tallies are keyed by the raw text.
        if isinstance(value, (list, tuple)):
            return tuple(str(v).strip() for v in value)
        return value

    @field_validator("suspicious_methods")
    @classmethod
    def _methods_upper(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        return tuple(m.strip().upper() for m in value)

    @model_validator(mode="after")
    def _bands_ordered(self) -> "DetectionConfig":
        if self.medium_frequency_threshold > self.high_frequency_threshold:
            raise ValueError(
                "medium_frequency_threshold must not exceed high_frequency_threshold "
                f"({self.medium_frequency_threshold} > {self.high_frequency_threshold})"
            )
        return self

    @property
    def window_seconds(self) -> int:
        return self.window_minutes * 60


def load_config(path: str | Path) -> DetectionConfig:
    """Load a YAML file and return a validated :class:`DetectionConfig`."""

    path = Path(path)
    try:
        with path.open("r", encoding="utf-8") as handle:
            raw = yaml.safe_load(handle)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Cannot read config {path}: {e}") from e

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigurationError(f"Config {path} must be a mapping, got {type(raw).__name__}")

    try:
        return DetectionConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid config {path}: {e}") from e


__all__ = ["ColumnMapping", "DetectionConfig", "load_config"]
