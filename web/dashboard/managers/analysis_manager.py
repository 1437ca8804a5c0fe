"""
Analysis manager.

Runs flowguard on an uploaded log on demand and exposes a snapshot of the
latest result for the UI. Each successful run is also persisted as a
timestamped JSON file under `log_dir/analyses/`, which is what the PDF
report is built from.
"""

from __future__ import annotations

import json
import logging
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from flowguard import DetectionConfig, analyze_file, load_config
from flowguard.report import result_payload
from flowguard.utils import timestamp_slug

logger = logging.getLogger("dashboard.analysis")


@dataclass
class AnalysisManager:
    """
    Manual analysis orchestrator.

    Attributes:
        log_dir: Root folder for persisted analyses and reports.
        detection_config_path: Optional YAML detection config.
        stream_threshold_bytes: Inputs larger than this use the streaming source.

    State (protected by _lock):
        last_run_at: UNIX timestamp of the last run.
        last_payload: Latest persisted payload.
        last_error: Last error message (if any).
        last_results_path: Path to the most recent persisted results JSON.
    """
    log_dir: Path
    detection_config_path: Optional[Path] = None
    stream_threshold_bytes: int = 8 * 1024 * 1024

    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    last_run_at: Optional[float] = None
    last_payload: Dict[str, Any] = field(default_factory=dict)
    last_error: Optional[str] = None
    last_results_path: Optional[Path] = None

    @property
    def analyses_dir(self) -> Path:
        return self.log_dir / "analyses"

    @property
    def reports_dir(self) -> Path:
        return self.log_dir / "reports"

    # --------------------------- Private helpers ---------------------------

    def _config(self) -> DetectionConfig:
        if self.detection_config_path:
            return load_config(self.detection_config_path)
        return DetectionConfig()

    def _persist(self, payload: Dict[str, Any]) -> Path:
        """Write `log_dir/analyses/analysis_<ts>.json`."""
        self.analyses_dir.mkdir(parents=True, exist_ok=True)
        out_path = self.analyses_dir / f"analysis_{timestamp_slug()}.json"
        with out_path.open("w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2)
        return out_path

    # ---------------------------- Public methods ---------------------------

    def run(self, log_path: Path) -> Dict[str, Any]:
        """
        Analyze `log_path`, persist the payload and make it the latest result.

        Errors (configuration, unreadable source) are recorded in the snapshot
        and re-raised for the caller to translate.
        """
        try:
            cfg = self._config()
            streaming = log_path.stat().st_size > self.stream_threshold_bytes
            result = analyze_file(log_path, cfg, streaming=streaming)
        except Exception as e:
            with self._lock:
                self.last_error = str(e)
            raise

        payload = result_payload(result)
        payload["file"] = log_path.name
        saved_path = self._persist(payload)
        logger.info(
            "Analysis of %s saved to %s (%d flagged)",
            log_path.name, saved_path.name, len(result.flagged),
        )

        with self._lock:
            self.last_payload = payload
            self.last_error = None
            self.last_run_at = time.time()
            self.last_results_path = saved_path

        return payload

    def latest_results_path(self) -> Optional[Path]:
        with self._lock:
            return self.last_results_path

    def snapshot(self) -> Dict[str, Any]:
        """Return a thread-safe snapshot of the latest analysis state for the API."""
        with self._lock:
            return {
                "last_run_at": self.last_run_at,
                "error": self.last_error,
                "results": self.last_payload,
                "results_file": self.last_results_path.name if self.last_results_path else None,
            }
