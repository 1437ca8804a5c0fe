"""
Command-line entry point.

    flowguard logs.csv [--config detection.yaml] [--stream] [--llm] ...
    flowguard --generate-sample sample.csv --entries 500 --seed 7
    flowguard --test-llm

Exit codes: 0 success, 1 missing input / invalid config / unreadable source,
2 usage error (argparse).
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from tqdm import tqdm

from advisor import (
    AdvisorSettings,
    LLMError,
    OpenAIClient,
    check_connection,
    explain_window,
    format_response,
    suggest_detection_rules,
    summarize_windows,
)

from .config import DetectionConfig, load_config
from .dto import AnalysisResult
from .errors import ConfigurationError, SourceReadError
from .orchestration.runner import analyze_file
from .report import build_pdf, build_summary_report, result_payload, save_results
from .sample import generate_sample_csv
from .utils import init_logging, timestamp_slug

logger = logging.getLogger("flowguard.cli")

DEFAULT_SAMPLE_ENTRIES = 100


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="flowguard",
        description="Rule-based DDoS detection over network-flow CSV logs.",
    )
    ap.add_argument("log_file", nargs="?", help="CSV flow log (.csv, .csv.gz or .csv.zst).")
    ap.add_argument("--config", "-c", help="YAML detection config.")
    ap.add_argument("--window-minutes", type=int, help="Override the window size in minutes.")
    ap.add_argument("--stream", action="store_true", help="Read the input in fixed-size batches.")
    ap.add_argument("--batch-size", type=int, help="Records per streamed batch.")
    ap.add_argument("--output", "-o", help="Results JSON path (default: ddos-analysis-results-<ts>.json).")
    ap.add_argument("--no-save", action="store_true", help="Do not write the results JSON.")
    ap.add_argument("--pdf", help="Also render a PDF report to this path.")
    ap.add_argument("--llm", action="store_true", help="Ask the LLM about the top flagged windows.")
    ap.add_argument(
        "--max-llm", type=int,
        help="How many flagged windows to send to the LLM (default: FLOWGUARD_LLM_MAX_LLM_ANALYSIS, 3).",
    )
    ap.add_argument("--generate-sample", metavar="FILE", help="Write a sample CSV and exit.")
    ap.add_argument("--entries", type=int, default=DEFAULT_SAMPLE_ENTRIES, help="Rows in the generated sample.")
    ap.add_argument("--seed", type=int, help="Random seed for the generated sample.")
    ap.add_argument("--test-llm", action="store_true", help="Check the LLM connection and exit.")
    ap.add_argument("--log-level", default="INFO", help="DEBUG, INFO, WARNING or ERROR.")
    ap.add_argument("--log-file", dest="log_path", help="Also log to this rotating file.")
    return ap


def _effective_config(args: argparse.Namespace) -> DetectionConfig:
    cfg = load_config(args.config) if args.config else DetectionConfig()
    overrides = {}
    if args.window_minutes is not None:
        overrides["window_minutes"] = args.window_minutes
    if args.batch_size is not None:
        overrides["batch_size"] = args.batch_size
    if overrides:
        # Re-validate: model_copy(update=...) would skip the field checks.
        cfg = DetectionConfig.model_validate({**cfg.model_dump(), **overrides})
    return cfg


def _make_client(settings: Optional[AdvisorSettings] = None) -> OpenAIClient:
    return OpenAIClient(settings or AdvisorSettings.from_env())


def run_llm_analysis(
    result: AnalysisResult,
    max_entries: Optional[int] = None,
    client: Optional[OpenAIClient] = None,
    settings: Optional[AdvisorSettings] = None,
) -> List[str]:
    """
    Explain the top flagged windows; returns the printed sections.

    `max_entries` defaults to `settings.max_llm_analysis`.
    """
    settings = settings or AdvisorSettings.from_env()
    client = client or _make_client(settings)
    if max_entries is None:
        max_entries = settings.max_llm_analysis
    entries = result.flagged[:max_entries]
    sections: List[str] = []
    if not entries:
        logger.info("No suspicious entries found for LLM analysis.")
        return sections

    pbar = tqdm(total=len(entries))
    for n, fw in enumerate(entries, start=1):
        pbar.set_description(f"LLM: {fw.source_ip}")
        pbar.write(f"Entry {n}/{len(result.flagged)}: IP {fw.source_ip} (Risk Score: {fw.risk_score})")
        try:
            for title, text in (
                ("AI Analysis", explain_window(client, fw)),
                ("AI Suggestions", suggest_detection_rules(client, fw)),
            ):
                section = format_response(title, text)
                sections.append(section)
                pbar.write(section)
        except LLMError as e:
            logger.error("Error analyzing entry %d: %s", n, e)
        pbar.update()
    pbar.close()

    if len(entries) > 1:
        try:
            section = format_response("AI Batch Assessment", summarize_windows(client, entries))
            sections.append(section)
            print(section)
        except LLMError as e:
            logger.error("Error getting summary analysis: %s", e)
    return sections


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    init_logging(
        "flowguard", args.log_level, Path(args.log_path) if args.log_path else None, also=("advisor",)
    )

    if args.generate_sample:
        generate_sample_csv(args.generate_sample, args.entries, args.seed)
        return 0

    if args.test_llm:
        return 0 if check_connection(_make_client()) else 1

    if not args.log_file:
        logger.error("No log file given (see --help).")
        return 1
    input_path = Path(args.log_file)
    if not input_path.exists():
        logger.error("Log file not found: %s", input_path)
        return 1

    try:
        cfg = _effective_config(args)
    except (ConfigurationError, ValueError) as e:
        logger.error("Invalid configuration: %s", e)
        return 1

    logger.info("Starting DDoS Detection Analysis of %s", input_path)
    try:
        result = analyze_file(input_path, cfg, streaming=args.stream, batch_size=args.batch_size)
    except SourceReadError as e:
        logger.error("%s", e)
        return 1

    print(build_summary_report(result))

    if args.llm and result.flagged:
        run_llm_analysis(result, args.max_llm)

    if not args.no_save:
        out = Path(args.output) if args.output else Path(f"ddos-analysis-results-{timestamp_slug()}.json")
        save_results(result, out)

    if args.pdf:
        build_pdf(result_payload(result), args.pdf)

    logger.info("Analysis complete!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
