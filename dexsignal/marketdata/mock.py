"""MockPairSource — offline pair generator for --mock runs and demos.

Produces plausible DexScreener-shaped pair records covering every signal
pattern (fresh listings, pumps, dumps, thin pools) plus the noise the engine
must ignore (stablecoins, dust, other chains, duplicate pairs across sources).
"""

from __future__ import annotations

import random
import time
from typing import Any

from dexsignal.marketdata.base import PairSource
from dexsignal.marketdata.dexscreener import QUOTE_TOKENS

_TOKEN_POOL = [
    ("Brett", "BRETT"),
    ("Degen", "DEGEN"),
    ("Toshi", "TOSHI"),
    ("Keycat", "KEYCAT"),
    ("Mister Miggles", "MIGGLES"),
    ("Aerodrome", "AERO"),
    ("Virtual Protocol", "VIRTUAL"),
    ("Higher", "HIGHER"),
    ("Based Pepe", "PEPE"),
    ("Moonwell", "WELL"),
    ("Normie", "NORMIE"),
    ("Doginme", "DOGINME"),
    ("Ski Mask Dog", "SKI"),
    ("Tybg", "TYBG"),
    ("Benji", "BENJI"),
    ("Crash", "CRASH"),
]

_NOISE_TOKENS = [("USD Coin", "USDC"), ("Wrapped Ether", "WETH"), ("Dai", "DAI")]

_PROFILES = ("fresh", "pump", "accumulate", "spike", "dump", "bleed", "thin", "quiet")


def _address(rng: random.Random) -> str:
    return "0x" + "".join(rng.choice("0123456789abcdef") for _ in range(40))


class MockPairSource(PairSource):
    """In-memory stand-in for DexScreener (no network)."""

    def __init__(self, seed: int | None = None, chain: str = "base") -> None:
        self._rng = random.Random(seed)
        self._chain = chain
        self._tokens = [(name, symbol, _address(self._rng)) for name, symbol in _TOKEN_POOL]
        self._noise = [(name, symbol, _address(self._rng)) for name, symbol in _NOISE_TOKENS]

    @property
    def name(self) -> str:
        return "mock"

    def _pair(self, token: tuple[str, str, str], profile: str, chain: str | None = None) -> dict[str, Any]:
        rng = self._rng
        name, symbol, address = token
        now = int(time.time() * 1000)
        liquidity = rng.uniform(20_000, 400_000)
        h1, h6, h24 = rng.uniform(-3, 3), rng.uniform(-5, 5), rng.uniform(-8, 8)
        v24 = rng.uniform(30_000, 900_000)
        v6 = v24 * rng.uniform(0.2, 0.4)
        v1 = v6 * rng.uniform(0.1, 0.3)
        buys = rng.randint(200, 2000)
        sells = int(buys * rng.uniform(0.8, 1.2))
        age_days = rng.uniform(3, 300)

        if profile == "fresh":
            age_days = rng.uniform(0.02, 0.45)
        elif profile == "pump":
            h1 = rng.uniform(9, 45)
            v1 = rng.uniform(8_000, 90_000)
            sells = int(buys * rng.uniform(0.3, 0.7))
        elif profile == "accumulate":
            h6, h24 = rng.uniform(6, 20), rng.uniform(12, 60)
            sells = int(buys * rng.uniform(0.4, 0.6))
        elif profile == "spike":
            h1 = rng.uniform(3.5, 7.5)
            v1 = rng.uniform(15_000, 120_000)
            v6 = v1 * rng.uniform(1.1, 1.8)
        elif profile == "dump":
            h1 = rng.uniform(-30, -9)
            v1 = rng.uniform(6_000, 60_000)
            sells = int(buys * rng.uniform(1.1, 1.9))
        elif profile == "bleed":
            h1 = rng.uniform(-2, 0)
            h6, h24 = rng.uniform(-25, -11), rng.uniform(-60, -21)
        elif profile == "thin":
            liquidity = rng.uniform(1_200, 4_800)
            v24 = liquidity * rng.uniform(4, 40)

        return {
            "chainId": chain or self._chain,
            "dexId": rng.choice(["uniswap", "aerodrome", "baseswap"]),
            "pairAddress": _address(rng),
            "baseToken": {"address": address, "name": name, "symbol": symbol},
            "quoteToken": {"symbol": rng.choice(["WETH", "USDC"])},
            "priceUsd": f"{rng.uniform(0.000001, 3):.8f}",
            "priceChange": {"h1": round(h1, 2), "h6": round(h6, 2), "h24": round(h24, 2)},
            "volume": {"h1": round(v1, 2), "h6": round(v6, 2), "h24": round(v24, 2)},
            "liquidity": {"usd": round(liquidity, 2)},
            "fdv": round(liquidity * rng.uniform(3, 40), 2),
            "txns": {"h24": {"buys": buys, "sells": sells}},
            "pairCreatedAt": now - int(age_days * 86_400_000),
        }

    def _batch(self, count: int) -> list[dict[str, Any]]:
        pairs = [
            self._pair(self._rng.choice(self._tokens), self._rng.choice(_PROFILES))
            for _ in range(count)
        ]
        pairs.append(self._pair(self._rng.choice(self._noise), "quiet"))
        pairs.append(self._pair(self._rng.choice(self._tokens), "pump", chain="ethereum"))
        return pairs

    async def fetch_token_pairs(self, addresses: list[str]) -> list[dict[str, Any]]:
        wanted = {a.lower() for a in addresses if a}
        quotes = {a.lower() for a in QUOTE_TOKENS.get(self._chain, {}).values()}
        if wanted & quotes:
            return self._batch(self._rng.randint(8, 14))
        known = [t for t in self._tokens + self._noise if t[2].lower() in wanted]
        return [self._pair(t, self._rng.choice(_PROFILES)) for t in known]

    async def fetch_trending_pairs(self, chain: str) -> list[dict[str, Any]]:
        batch = self._batch(self._rng.randint(10, 18))
        # repeated pairs, as overlapping real feeds produce
        return batch + batch[:3]

    async def fetch_boosted_pairs(self, chain: str) -> list[dict[str, Any]]:
        return self._batch(self._rng.randint(4, 8))
