from __future__ import annotations

from types import SimpleNamespace
from unittest import mock

import httpx
import openai
import pytest

from conftest import make_record
from advisor import (
    AdvisorSettings,
    LLMError,
    OpenAIClient,
    check_connection,
    explain_window,
    format_response,
    summarize_windows,
)
from advisor.prompts import build_summary_prompt, build_window_prompt
from flowguard import analyze_records


def completion(text, prompt_tokens=11, completion_tokens=7):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=text))],
        usage=SimpleNamespace(prompt_tokens=prompt_tokens, completion_tokens=completion_tokens),
    )


def fake_sdk(*responses):
    sdk = mock.Mock()
    sdk.chat.completions.create.side_effect = list(responses)
    return sdk


def connection_error():
    return openai.APIConnectionError(request=httpx.Request("POST", "http://localhost:11434/v1/chat/completions"))


def flagged_window():
    records = [make_record("192.168.1.100", i, 10, user_agent="curl/7.68") for i in range(60)]
    return analyze_records(records).flagged[0]


def test_settings_from_env():
    s = AdvisorSettings.from_env({
        "FLOWGUARD_LLM_MODEL": "llama3",
        "FLOWGUARD_LLM_MAX_RETRIES": "5",
        "FLOWGUARD_LLM_TIMEOUT_SECONDS": "2.5",
        "UNRELATED": "x",
    })
    assert s.model == "llama3"
    assert s.max_retries == 5
    assert s.timeout_seconds == 2.5
    assert s.base_url == "http://localhost:11434/v1"


def test_call_returns_text_and_token_counts():
    client = OpenAIClient(client=fake_sdk(completion("  hello  ")), sleep=lambda s: None)
    assert client.call_from_messages([{"role": "user", "content": "hi"}]) == ("hello", 11, 7)


def test_retries_with_exponential_backoff_then_succeeds():
    sleeps = []
    sdk = fake_sdk(connection_error(), completion(""), completion("ok"))
    client = OpenAIClient(AdvisorSettings(max_retries=3, backoff_base=2.0), client=sdk, sleep=sleeps.append)

    assert client.complete("prompt") == "ok"
    assert sleeps == [2.0, 4.0]
    assert sdk.chat.completions.create.call_count == 3


def test_gives_up_after_bounded_attempts():
    sleeps = []
    sdk = fake_sdk(connection_error(), connection_error())
    client = OpenAIClient(AdvisorSettings(max_retries=2), client=sdk, sleep=sleeps.append)

    with pytest.raises(LLMError, match="after 2 attempts"):
        client.complete("prompt")
    assert sleeps == [2.0]


def test_window_prompt_mentions_key_facts():
    fw = flagged_window()
    prompt = build_window_prompt(fw, "explanation")
    assert "IP: 192.168.1.100" in prompt
    assert f"Risk Score: {fw.risk_score}" in prompt
    assert "curl/7.68" in prompt
    assert "explain why" in prompt

    assert "detection rules" in build_window_prompt(fw, "anomaly")


def test_summary_prompt_numbers_entries():
    fw = flagged_window()
    prompt = build_summary_prompt([fw, fw])
    assert "1. IP: 192.168.1.100" in prompt
    assert "2. IP: 192.168.1.100" in prompt


def test_explain_and_summarize_use_client():
    client = mock.Mock()
    client.complete.return_value = "answer"
    fw = flagged_window()

    assert explain_window(client, fw) == "answer"
    assert summarize_windows(client, [fw]) == "answer"
    assert client.complete.call_count == 2
    with pytest.raises(ValueError):
        summarize_windows(client, [])


def test_check_connection():
    ok = mock.Mock()
    ok.complete.return_value = "LLM connection successful"
    assert check_connection(ok) is True

    down = mock.Mock()
    down.complete.side_effect = LLMError("refused")
    assert check_connection(down) is False


def test_format_response():
    assert format_response("AI Analysis", "  line one\r\n\n\n\nline two  ") == "\n=== AI Analysis ===\nline one\n\nline two\n"
