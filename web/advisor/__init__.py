"""
advisor: optional LLM commentary on flagged windows.

Public API:
- AdvisorSettings        (endpoint/model/retry settings, env-overridable)
- OpenAIClient, LLMError (OpenAI-compatible chat client with bounded retries)
- explain_window, suggest_detection_rules, summarize_windows,
  check_connection, format_response
"""

from __future__ import annotations

from .config import AdvisorSettings
from .explain import (
    check_connection,
    explain_window,
    format_response,
    suggest_detection_rules,
    summarize_windows,
)
from .llm_clients.openai_client import LLMError, OpenAIClient

__all__ = [
    "AdvisorSettings",
    "OpenAIClient",
    "LLMError",
    "explain_window",
    "suggest_detection_rules",
    "summarize_windows",
    "check_connection",
    "format_response",
]
