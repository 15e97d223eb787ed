"""Centralized configuration via pydantic-settings, loaded from .env."""

from __future__ import annotations

import functools

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── LLM · token analysis ───────────────────────────────────────────
    groq_api_key: str = ""
    llm_provider: str = "groq"
    llm_base_url: str = "https://api.groq.com/openai/v1"
    llm_model: str = "llama-3.3-70b-versatile"
    llm_temperature: float = 0.7
    llm_max_tokens: int = 300

    # ── Market data ────────────────────────────────────────────────────
    dexscreener_base_url: str = "https://api.dexscreener.com"
    http_timeout_seconds: float = 10.0
    target_chain: str = "base"

    # ── Signal engine ──────────────────────────────────────────────────
    cache_ttl_ms: int = 25_000
    max_signals: int = 50
    free_signal_limit: int = 5

    # ── API Server ────────────────────────────────────────────────────
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    # ── Operational Settings ───────────────────────────────────────────
    log_level: str = "INFO"
    mock_mode: bool = False

    # ── Computed helpers ───────────────────────────────────────────────
    @property
    def analysis_configured(self) -> bool:
        """Whether an LLM key is present; no key means the sentinel text is served."""
        return bool(self.groq_api_key.strip())


@functools.lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Singleton accessor for the global settings."""
    return Settings()
