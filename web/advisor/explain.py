"""
LLM-assisted commentary on flagged windows.

Consumes FlaggedWindow values only; nothing here feeds back into scoring.
Every call goes through OpenAIClient, which owns retry and backoff.
"""

from __future__ import annotations

import logging
import re
from typing import Sequence

from flowguard.dto import FlaggedWindow

from .llm_clients.openai_client import LLMError, OpenAIClient
from .prompts import build_summary_prompt, build_window_prompt

logger = logging.getLogger(__name__)

CONNECTION_PROMPT = 'Hello! Please respond with "LLM connection successful" if you can see this message.'

_BLANK_RUNS = re.compile(r"\n{2,}")


def explain_window(client: OpenAIClient, flagged: FlaggedWindow) -> str:
    return client.complete(build_window_prompt(flagged, "explanation"))


def suggest_detection_rules(client: OpenAIClient, flagged: FlaggedWindow) -> str:
    return client.complete(build_window_prompt(flagged, "anomaly"))


def summarize_windows(client: OpenAIClient, flagged: Sequence[FlaggedWindow]) -> str:
    if not flagged:
        raise ValueError("summarize_windows needs at least one flagged window")
    return client.complete(build_summary_prompt(flagged))


def check_connection(client: OpenAIClient) -> bool:
    """Send a trivial prompt; True when the model answers."""
    try:
        client.complete(CONNECTION_PROMPT)
    except LLMError as e:
        logger.error("LLM connection failed: %s", e)
        return False
    logger.info("LLM connection successful")
    return True


def format_response(title: str, text: str) -> str:
    """Normalize line endings and blank runs, under a '=== title ===' header."""
    clean = (text or "").strip().replace("\r\n", "\n")
    clean = _BLANK_RUNS.sub("\n\n", clean)
    return f"\n=== {title} ===\n{clean}\n"
