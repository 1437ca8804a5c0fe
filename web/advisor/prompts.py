"""
Prompt builders for flagged windows.

Prompts are short and ask for short answers: local models are slow and the
output is printed next to the summary report.
"""

from __future__ import annotations

from typing import Literal, Sequence

from flowguard.dto import FlaggedWindow

PromptKind = Literal["explanation", "anomaly", "general"]

_INSTRUCTIONS = {
    "explanation": "Briefly explain why this might indicate a DDoS attack. Keep response under 100 words.",
    "anomaly": "Suggest 1-2 specific detection rules for this pattern. Keep response under 100 words.",
    "general": "Briefly analyze this entry for DDoS indicators. Keep response under 100 words.",
}


def build_window_prompt(flagged: FlaggedWindow, kind: PromptKind = "explanation") -> str:
    indicators = "; ".join(flagged.indicators) or "N/A"
    labels = ", ".join(flagged.labels) or "N/A"
    return (
        "You are a cybersecurity expert. Analyze this suspicious log entry in 2-3 sentences maximum:\n\n"
        f"IP: {flagged.source_ip or 'N/A'}\n"
        f"Requests: {flagged.request_count} ({flagged.request_frequency:.2f} req/min)\n"
        f"Time: {flagged.window_start.isoformat()}\n"
        f"Risk Score: {flagged.risk_score}\n"
        f"Indicators: {indicators}\n"
        f"Labels: {labels}\n\n"
        f"{_INSTRUCTIONS.get(kind, _INSTRUCTIONS['general'])}"
    )


def build_summary_prompt(flagged: Sequence[FlaggedWindow]) -> str:
    entries = "\n".join(
        f"{n}. IP: {fw.source_ip}, Requests: {fw.request_count}, Risk: {fw.risk_score}"
        for n, fw in enumerate(flagged, start=1)
    )
    return (
        "You are a cybersecurity expert. Analyze these suspicious entries in 3-4 sentences maximum:\n\n"
        f"{entries}\n\n"
        "Provide a brief threat assessment and 1-2 immediate actions. Keep response under 150 words."
    )
