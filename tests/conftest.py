from __future__ import annotations

import asyncio
from typing import Any, Callable

import pytest

from dexsignal.errors import UpstreamUnavailable
from dexsignal.marketdata.base import PairSource
from dexsignal.marketdata.dexscreener import QUOTE_TOKENS

NOW_MS = 1_760_000_000_000
WETH = QUOTE_TOKENS["base"]["weth"]
USDC = QUOTE_TOKENS["base"]["usdc"]


def build_raw_pair(
    pair: str = "0xpair",
    token: str = "0xtoken",
    symbol: str = "TKN",
    chain: str = "base",
    *,
    price: str | None = "0.01234",
    h1: float = 0.0,
    h6: float = 0.0,
    h24: float = 0.0,
    v1: float = 0.0,
    v6: float = 0.0,
    v24: float = 0.0,
    liquidity: float = 0.0,
    fdv: float = 0.0,
    buys: int = 0,
    sells: int = 0,
    age_hours: float | None = None,
) -> dict[str, Any]:
    raw: dict[str, Any] = {
        "chainId": chain,
        "pairAddress": pair,
        "baseToken": {"address": token, "name": f"{symbol} Token", "symbol": symbol},
        "priceChange": {"h1": h1, "h6": h6, "h24": h24},
        "volume": {"h1": v1, "h6": v6, "h24": v24},
        "liquidity": {"usd": liquidity},
        "fdv": fdv,
        "txns": {"h24": {"buys": buys, "sells": sells}},
    }
    if price is not None:
        raw["priceUsd"] = price
    if age_hours is not None:
        raw["pairCreatedAt"] = NOW_MS - int(age_hours * 3_600_000)
    return raw


@pytest.fixture
def raw_pair() -> Callable[..., dict[str, Any]]:
    return build_raw_pair


class FakeClock:
    def __init__(self, now: int = NOW_MS) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now


class FakeSource(PairSource):
    """Canned pair lists keyed by the label the pipeline fetches them under."""

    def __init__(
        self,
        weth: list[dict[str, Any]] | None = None,
        usdc: list[dict[str, Any]] | None = None,
        trending: list[dict[str, Any]] | None = None,
        boosted: list[dict[str, Any]] | None = None,
        by_token: dict[str, list[dict[str, Any]]] | None = None,
        failing: set[str] | None = None,
        delay: float = 0.0,
    ) -> None:
        self._lists = {"weth": weth or [], "usdc": usdc or [], "trending": trending or [],
                       "boosted": boosted or []}
        self._by_token = by_token or {}
        self._failing = failing or set()
        self._delay = delay
        self.calls: list[str] = []
        self.closed = False

    @property
    def name(self) -> str:
        return "fake"

    async def _serve(self, label: str, pairs: list[dict[str, Any]]) -> list[dict[str, Any]]:
        self.calls.append(label)
        if self._delay:
            await asyncio.sleep(self._delay)
        if label in self._failing:
            raise UpstreamUnavailable("fake", f"{label} down")
        return pairs

    async def fetch_token_pairs(self, addresses: list[str]) -> list[dict[str, Any]]:
        address = addresses[0]
        if address == WETH:
            return await self._serve("weth", self._lists["weth"])
        if address == USDC:
            return await self._serve("usdc", self._lists["usdc"])
        return await self._serve(f"token:{address}", self._by_token.get(address, []))

    async def fetch_trending_pairs(self, chain: str) -> list[dict[str, Any]]:
        return await self._serve("trending", self._lists["trending"])

    async def fetch_boosted_pairs(self, chain: str) -> list[dict[str, Any]]:
        return await self._serve("boosted", self._lists["boosted"])

    async def close(self) -> None:
        self.closed = True


class FakeAnalyst:
    def __init__(self, reply: str = "RISK 3/10. Momentum strong.", fail: bool = False) -> None:
        self.reply = reply
        self.fail = fail
        self.prompts: list[tuple[str, str]] = []

    @property
    def token_usage(self) -> dict[str, int]:
        return {"prompt_tokens": 0, "completion_tokens": 0, "total_tokens": len(self.prompts)}

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        self.prompts.append((system_prompt, user_prompt))
        if self.fail:
            raise RuntimeError("LLM call failed after 1 attempts: boom")
        return self.reply

    async def close(self) -> None:
        return None
