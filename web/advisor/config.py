"""
Settings for the LLM advisor.

Defaults target a local Ollama server through its OpenAI-compatible
endpoint. Every field can be overridden from the environment with the
FLOWGUARD_LLM_ prefix (e.g. FLOWGUARD_LLM_MODEL=llama3).
"""

from __future__ import annotations

import os
from typing import Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

ENV_PREFIX = "FLOWGUARD_LLM_"


class AdvisorSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    base_url: str = "http://localhost:11434/v1"
    model: str = "mistral"
    api_key: str = "ollama"  # Ollama ignores the key but the SDK requires one
    timeout_seconds: float = Field(default=30.0, gt=0)
    max_retries: int = Field(default=3, ge=1)
    backoff_base: float = Field(default=2.0, ge=0)
    temperature: float = Field(default=0.0, ge=0)
    max_llm_analysis: int = Field(default=3, ge=1)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "AdvisorSettings":
        environ = os.environ if environ is None else environ
        values = {}
        for name in cls.model_fields:
            raw = environ.get(ENV_PREFIX + name.upper())
            if raw is not None and raw != "":
                values[name] = raw
        return cls.model_validate(values)
