"""Signal pipeline — one evaluation cycle and per-token analysis.

A cycle: cache check → concurrent fetch of every source (each failing open to
an empty list) → concatenate → target-chain filter → pair dedup → normalize →
rule engine → ranker → cache put.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from dexsignal.config import Settings, get_settings
from dexsignal.engine.cache import CacheEntry, SignalCache
from dexsignal.engine.dedup import dedup_pairs
from dexsignal.engine.models import Signal
from dexsignal.engine.normalizer import describe_token, normalize_pair, pair_chain
from dexsignal.engine.ranker import DEFAULT_LIMIT, rank
from dexsignal.engine.rules import classify_all
from dexsignal.errors import (
    ConfigurationMissing,
    MalformedInput,
    NoMatchingData,
    UpstreamUnavailable,
)
from dexsignal.llm_client import LLMClient, build_analysis_client
from dexsignal.marketdata.base import PairSource
from dexsignal.marketdata.dexscreener import QUOTE_TOKENS, DexScreenerClient
from dexsignal.marketdata.mock import MockPairSource
from dexsignal.utils import now_ms

logger = logging.getLogger(__name__)

ANALYSIS_UNAVAILABLE = "AI analysis unavailable: GROQ_API_KEY not configured."
ANALYSIS_FAILED = "Analysis failed"

_ANALYST_SYSTEM_PROMPT = (
    "You are an AI trading analyst for {chain} chain tokens. Give concise, actionable "
    "analysis. Include risk assessment (1-10), momentum verdict, and recommendation. "
    "Be direct. Use terminal/hacker style. Max 200 words."
)


@dataclass(frozen=True)
class SignalFeed:
    signals: tuple[Signal, ...]
    cached: bool
    pairs_scanned: int
    sources: tuple[str, ...]
    produced_at_ms: int

    @classmethod
    def from_entry(cls, entry: CacheEntry, cached: bool) -> SignalFeed:
        return cls(
            signals=entry.signals,
            cached=cached,
            pairs_scanned=int(entry.meta.get("pairsScanned", 0)),
            sources=tuple(entry.meta.get("sources", ())),
            produced_at_ms=entry.produced_at_ms,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "signals": [s.to_dict() for s in self.signals],
            "cached": self.cached,
            "count": len(self.signals),
            "pairsScanned": self.pairs_scanned,
            "sources": list(self.sources),
        }


async def gather_fail_open(
    fetches: dict[str, Awaitable[list[dict[str, Any]]]],
) -> dict[str, list[dict[str, Any]]]:
    """Run every fetch concurrently; a failed fetch contributes an empty list."""
    names = list(fetches)
    results = await asyncio.gather(*fetches.values(), return_exceptions=True)
    out: dict[str, list[dict[str, Any]]] = {}
    for name, result in zip(names, results):
        if isinstance(result, BaseException):
            if isinstance(result, UpstreamUnavailable):
                logger.warning("[%s] source unavailable: %s", name, result)
            else:
                logger.error("[%s] source failed", name, exc_info=result)
            out[name] = []
        else:
            out[name] = list(result)
    return out


class SignalPipeline:
    """Owns the cache and the collaborators for one process."""

    def __init__(
        self,
        source: PairSource,
        cache: SignalCache | None = None,
        chain: str = "base",
        limit: int = DEFAULT_LIMIT,
        analyst: LLMClient | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.source = source
        self.chain = chain.lower()
        self.limit = limit
        self.cache = cache or SignalCache(clock=clock)
        self._analyst = analyst
        self._clock = clock
        self._refresh_lock = asyncio.Lock()
        self.cycles = 0

    @property
    def analysis_configured(self) -> bool:
        return self._analyst is not None

    @property
    def analysis_usage(self) -> dict[str, int] | None:
        """Token totals reported by the analyst client, if one is configured."""
        if self._analyst is None:
            return None
        return self._analyst.token_usage

    # ── evaluation cycle ──────────────────────────────────────────────

    def _source_fetches(self) -> dict[str, Awaitable[list[dict[str, Any]]]]:
        fetches: dict[str, Awaitable[list[dict[str, Any]]]] = {
            label: self.source.fetch_token_pairs([address])
            for label, address in QUOTE_TOKENS.get(self.chain, {}).items()
        }
        fetches["trending"] = self.source.fetch_trending_pairs(self.chain)
        fetches["boosted"] = self.source.fetch_boosted_pairs(self.chain)
        return fetches

    async def collect_pairs(self) -> tuple[list[dict[str, Any]], list[str]]:
        """Fetch every source, keep target-chain pairs, dedup by pair address."""
        by_source = await gather_fail_open(self._source_fetches())
        merged = [raw for pairs in by_source.values() for raw in pairs]
        on_chain = [raw for raw in merged if isinstance(raw, dict) and pair_chain(raw) == self.chain]
        return dedup_pairs(on_chain), list(by_source)

    def classify(self, raw_pairs: list[dict[str, Any]]) -> list[Signal]:
        """Normalize, run the rule book, rank. Pure apart from the clock."""
        now = self._clock()
        snapshots = [
            snap for snap in (normalize_pair(raw, self.chain, now) for raw in raw_pairs)
            if snap is not None
        ]
        return rank(classify_all(snapshots), self.limit)

    async def _compute(self) -> CacheEntry:
        pairs, sources = await self.collect_pairs()
        signals = self.classify(pairs)
        self.cycles += 1
        logger.info(
            "Cycle #%d: %d pairs scanned, %d signals", self.cycles, len(pairs), len(signals),
        )
        return self.cache.put(signals, {"pairsScanned": len(pairs), "sources": tuple(sources)})

    async def refresh(self) -> SignalFeed:
        """Serve the cached feed while fresh, otherwise run one cycle.

        Recomputation is single-flight: concurrent misses wait for the cycle in
        progress and then read its result instead of fanning out again.
        """
        entry = self.cache.get()
        if entry is not None:
            return SignalFeed.from_entry(entry, cached=True)
        async with self._refresh_lock:
            entry = self.cache.get()
            if entry is not None:
                return SignalFeed.from_entry(entry, cached=True)
            entry = await self._compute()
        return SignalFeed.from_entry(entry, cached=False)

    # ── per-token analysis ────────────────────────────────────────────

    def _analysis_client(self) -> LLMClient:
        if self._analyst is None:
            raise ConfigurationMissing("GROQ_API_KEY not configured")
        return self._analyst

    async def _run_analyst(self, token: dict[str, Any]) -> str:
        try:
            client = self._analysis_client()
        except ConfigurationMissing:
            return ANALYSIS_UNAVAILABLE
        chain = self.chain.capitalize()
        try:
            text = await client.complete(
                _ANALYST_SYSTEM_PROMPT.format(chain=chain),
                f"Analyze this {chain} chain token:\n{json.dumps(token, indent=2)}",
            )
        except RuntimeError as exc:
            logger.warning("Token analysis failed: %s", exc)
            return ANALYSIS_FAILED
        return text or ANALYSIS_FAILED

    async def _chain_pairs(self, address: str) -> list[dict[str, Any]]:
        try:
            pairs = await self.source.fetch_token_pairs([address])
        except UpstreamUnavailable as exc:
            logger.warning("Pair lookup for %s failed: %s", address, exc)
            pairs = []
        pairs = [p for p in pairs if isinstance(p, dict) and pair_chain(p) == self.chain]
        if not pairs:
            raise NoMatchingData(f"No {self.chain.capitalize()} chain pairs found")
        return pairs

    async def analyze_token(self, address: str | None) -> dict[str, Any]:
        """Summarize a token's top target-chain pair and ask the analyst about it."""
        address = (address or "").strip()
        if not address:
            raise MalformedInput("address required")

        try:
            pairs = await self._chain_pairs(address)
        except NoMatchingData as exc:
            return {"error": str(exc), "analysis": None}

        token = describe_token(pairs[0], self._clock())
        analysis = await self._run_analyst(token)
        return {"token": token, "analysis": analysis, "pairs": len(pairs)}

    async def close(self) -> None:
        await self.source.close()
        if self._analyst is not None:
            await self._analyst.close()


def build_pipeline(settings: Settings | None = None, mock: bool | None = None) -> SignalPipeline:
    """Wire a pipeline from settings: real or mock source, optional analyst."""
    s = settings or get_settings()
    use_mock = s.mock_mode if mock is None else mock
    source: PairSource
    if use_mock:
        source = MockPairSource(chain=s.target_chain)
    else:
        source = DexScreenerClient(base_url=s.dexscreener_base_url, timeout=s.http_timeout_seconds)

    try:
        analyst: LLMClient | None = build_analysis_client(s)
    except ConfigurationMissing:
        logger.warning("Token analysis DORMANT: no GROQ_API_KEY")
        analyst = None

    return SignalPipeline(
        source=source,
        cache=SignalCache(ttl_ms=s.cache_ttl_ms),
        chain=s.target_chain,
        limit=s.max_signals,
        analyst=analyst,
    )
