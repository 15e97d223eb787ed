"""LLM client wrapper using OpenAI-compatible endpoints.

Defaults to Groq's OpenAI-compatible API; any provider speaking the chat
completions protocol works by swapping ``base_url`` and ``model``.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from openai import AsyncOpenAI

from dexsignal.config import Settings, get_settings
from dexsignal.errors import ConfigurationMissing

logger = logging.getLogger(__name__)


class LLMClient:
    """Thin async wrapper around any OpenAI-compatible chat completions API."""

    def __init__(
        self,
        provider: str,
        api_key: str,
        base_url: str,
        model: str,
        temperature: float = 0.7,
        max_tokens: int = 300,
        max_attempts: int = 1,
        backoff_base: float = 2.0,
    ) -> None:
        self.provider = provider
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.max_attempts = max_attempts
        self.backoff_base = backoff_base

        self._client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
        )

        self._total_prompt_tokens = 0
        self._total_completion_tokens = 0

    # ── core completion ────────────────────────────────────────────────
    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        """Send a single chat completion request bounded by ``max_tokens``."""
        messages: list[dict[str, str]] = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ]
        kwargs: dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }

        last_exc: BaseException | None = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                response = await self._client.chat.completions.create(**kwargs)
                usage = response.usage
                if usage:
                    self._total_prompt_tokens += usage.prompt_tokens
                    self._total_completion_tokens += usage.completion_tokens
                    logger.debug(
                        "LLM usage [%s/%s] prompt=%d completion=%d",
                        self.provider,
                        self.model,
                        usage.prompt_tokens,
                        usage.completion_tokens,
                    )
                if not response.choices:
                    return ""
                return response.choices[0].message.content or ""
            except Exception as exc:
                last_exc = exc
                logger.warning(
                    "LLM call failed (attempt %d/%d, provider=%s): %s",
                    attempt,
                    self.max_attempts,
                    self.provider,
                    exc,
                )
                if attempt < self.max_attempts:
                    await asyncio.sleep(self.backoff_base ** attempt)

        raise RuntimeError(
            f"LLM call failed after {self.max_attempts} attempts: {last_exc}"
        ) from last_exc

    async def close(self) -> None:
        await self._client.close()

    # ── stats ──────────────────────────────────────────────────────────
    @property
    def token_usage(self) -> dict[str, int]:
        return {
            "prompt_tokens": self._total_prompt_tokens,
            "completion_tokens": self._total_completion_tokens,
            "total_tokens": self._total_prompt_tokens + self._total_completion_tokens,
        }


def build_analysis_client(settings: Settings | None = None) -> LLMClient:
    """Build the token-analysis client, or raise :class:`ConfigurationMissing`."""
    s = settings or get_settings()
    if not s.analysis_configured:
        raise ConfigurationMissing("GROQ_API_KEY not configured")
    return LLMClient(
        provider=s.llm_provider,
        api_key=s.groq_api_key.strip(),
        base_url=s.llm_base_url,
        model=s.llm_model,
        temperature=s.llm_temperature,
        max_tokens=s.llm_max_tokens,
    )
