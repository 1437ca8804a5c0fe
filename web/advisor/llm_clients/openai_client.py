# llm_clients/openai_client.py
import logging
import time
from typing import Any, Callable, Dict, List, Optional, Tuple

import openai
from openai import OpenAI

from ..config import AdvisorSettings

logger = logging.getLogger(__name__)


class LLMError(RuntimeError):
    """Raised when the model gives no usable answer within the retry budget."""


class OpenAIClient:
    def __init__(
        self,
        settings: Optional[AdvisorSettings] = None,
        client: Optional[Any] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.settings = settings or AdvisorSettings()
        # Retries are ours (bounded, with backoff); the SDK's own are disabled.
        self.client = client or OpenAI(
            base_url=self.settings.base_url,
            api_key=self.settings.api_key,
            timeout=self.settings.timeout_seconds,
            max_retries=0,
        )
        self._sleep = sleep

    def call_from_messages(
        self,
        messages: List[Dict[str, Any]],
        extra_create_kwargs: Optional[Dict[str, Any]] = None,
    ) -> Tuple[str, int, int]:
        extra_create_kwargs = extra_create_kwargs or {}
        attempts = self.settings.max_retries
        last_error: Optional[Exception] = None
        for attempt in range(1, attempts + 1):
            try:
                logger.debug("LLM query attempt %d/%d", attempt, attempts)
                resp = self.client.chat.completions.create(
                    model=self.settings.model,
                    messages=messages,
                    temperature=self.settings.temperature,
                    **extra_create_kwargs,
                )
                content = (resp.choices[0].message.content or "").strip() if resp.choices else ""
                if not content:
                    raise LLMError("Empty response from LLM")
                usage = getattr(resp, "usage", None)
                itoks = getattr(usage, "prompt_tokens", 0) or 0
                otoks = getattr(usage, "completion_tokens", 0) or 0
                return content, itoks, otoks
            except (openai.APIError, LLMError) as e:
                last_error = e
                logger.warning("LLM query attempt %d failed: %s", attempt, e)
                if attempt < attempts:
                    self._sleep(self.settings.backoff_base ** attempt)

        raise LLMError(f"LLM query failed after {attempts} attempts: {last_error}") from last_error

    def complete(self, prompt: str) -> str:
        text, _, _ = self.call_from_messages([{"role": "user", "content": prompt}])
        return text
