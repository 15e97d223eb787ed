from __future__ import annotations

from types import SimpleNamespace

import pytest

from dexsignal.config import Settings
from dexsignal.errors import ConfigurationMissing
from dexsignal.llm_client import LLMClient, build_analysis_client


class _FakeCompletions:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.calls: list[dict] = []

    async def create(self, **kwargs):  # noqa: ANN003
        self.calls.append(kwargs)
        if self.fail:
            raise ConnectionError("groq down")
        return SimpleNamespace(
            usage=SimpleNamespace(prompt_tokens=12, completion_tokens=30),
            choices=[SimpleNamespace(message=SimpleNamespace(content="RISK 4/10"))],
        )


def _client(fail: bool = False) -> tuple[LLMClient, _FakeCompletions]:
    client = LLMClient(
        provider="groq", api_key="k", base_url="https://llm.test/v1", model="m",
        temperature=0.7, max_tokens=300, backoff_base=0.0,
    )
    completions = _FakeCompletions(fail)
    client._client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return client, completions


def test_blank_key_is_configuration_missing() -> None:
    with pytest.raises(ConfigurationMissing):
        build_analysis_client(Settings(groq_api_key="   "))


def test_key_builds_client_from_settings() -> None:
    client = build_analysis_client(Settings(groq_api_key="gsk_x", llm_model="llama-x", llm_max_tokens=200))
    assert client.model == "llama-x"
    assert client.max_tokens == 200
    assert client.max_attempts == 1


@pytest.mark.asyncio
async def test_complete_sends_bounded_request_and_tracks_usage() -> None:
    client, completions = _client()
    text = await client.complete("system", "user")
    assert text == "RISK 4/10"
    call = completions.calls[0]
    assert call["max_tokens"] == 300
    assert call["temperature"] == 0.7
    assert [m["role"] for m in call["messages"]] == ["system", "user"]
    assert client.token_usage["total_tokens"] == 42


@pytest.mark.asyncio
async def test_complete_failure_raises_runtime_error() -> None:
    client, completions = _client(fail=True)
    client.max_attempts = 2
    with pytest.raises(RuntimeError, match="after 2 attempts"):
        await client.complete("system", "user")
    assert len(completions.calls) == 2
