"""DexScreener public API client (no API key required).

Three endpoints are used:

* ``/latest/dex/tokens/{a,b,c}`` — every pair trading the given tokens
* ``/token-profiles/latest/v1`` — the "trending" listing (token profiles)
* ``/token-boosts/top/v1`` — the "boosted" listing

Listings only carry token addresses, so trending/boosted tokens are resolved
to pairs with follow-up token queries.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from dexsignal.errors import UpstreamUnavailable
from dexsignal.marketdata.base import PairSource

logger = logging.getLogger(__name__)

_DEFAULT_BASE_URL = "https://api.dexscreener.com"

# Max token addresses per /tokens query (the API accepts up to 30).
TOKENS_PER_QUERY = 10
TRENDING_LIMIT = 15
BOOSTED_LIMIT = 10

# Quote assets whose pair lists seed every cycle, per chain.
QUOTE_TOKENS: dict[str, dict[str, str]] = {
    "base": {
        "weth": "0x4200000000000000000000000000000000000006",
        "usdc": "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913",
    },
}


def chunked(items: list[str], size: int) -> list[list[str]]:
    return [items[i:i + size] for i in range(0, len(items), size)]


def listing_addresses(listing: Any, chain: str, limit: int) -> list[str]:
    """Token addresses of the first ``limit`` listing entries on ``chain``."""
    if not isinstance(listing, list):
        return []
    on_chain = [
        item for item in listing
        if isinstance(item, dict) and str(item.get("chainId") or "").lower() == chain.lower()
    ][:limit]
    return [item["tokenAddress"] for item in on_chain if item.get("tokenAddress")]


class DexScreenerClient(PairSource):
    """Thin async wrapper around the DexScreener REST API."""

    def __init__(
        self,
        base_url: str = _DEFAULT_BASE_URL,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._client = client
        self._owns_client = client is None
        self.request_count = 0
        self.error_count = 0

    @property
    def name(self) -> str:
        return "dexscreener"

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                headers={"Accept": "application/json"},
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    # ── transport ─────────────────────────────────────────────────────

    async def _get_json(self, path: str) -> Any:
        url = f"{self._base_url}{path}"
        self.request_count += 1
        try:
            resp = await self._http().get(url)
        except httpx.HTTPError as exc:
            self.error_count += 1
            raise UpstreamUnavailable(self.name, f"{type(exc).__name__} on {path}") from exc
        if resp.status_code != 200:
            self.error_count += 1
            raise UpstreamUnavailable(self.name, f"HTTP {resp.status_code} on {path}")
        try:
            return resp.json()
        except ValueError as exc:
            self.error_count += 1
            raise UpstreamUnavailable(self.name, f"invalid JSON on {path}") from exc

    # ── queries ───────────────────────────────────────────────────────

    async def fetch_token_pairs(self, addresses: list[str]) -> list[dict[str, Any]]:
        addresses = [a.strip() for a in addresses if a and a.strip()]
        if not addresses:
            return []
        data = await self._get_json(f"/latest/dex/tokens/{','.join(addresses)}")
        pairs = data.get("pairs") if isinstance(data, dict) else None
        return [p for p in pairs if isinstance(p, dict)] if isinstance(pairs, list) else []

    async def _pairs_for_chunks(self, addresses: list[str]) -> list[dict[str, Any]]:
        chunks = chunked(addresses, TOKENS_PER_QUERY)
        results = await asyncio.gather(
            *(self.fetch_token_pairs(chunk) for chunk in chunks),
            return_exceptions=True,
        )
        pairs: list[dict[str, Any]] = []
        for chunk, result in zip(chunks, results):
            if isinstance(result, BaseException):
                logger.warning("[dexscreener] token chunk of %d failed: %s", len(chunk), result)
                continue
            pairs.extend(result)
        return pairs

    async def fetch_trending_pairs(self, chain: str) -> list[dict[str, Any]]:
        listing = await self._get_json("/token-profiles/latest/v1")
        addresses = listing_addresses(listing, chain, TRENDING_LIMIT)
        logger.debug("[dexscreener] %d trending tokens on %s", len(addresses), chain)
        return await self._pairs_for_chunks(addresses)

    async def fetch_boosted_pairs(self, chain: str) -> list[dict[str, Any]]:
        listing = await self._get_json("/token-boosts/top/v1")
        addresses = listing_addresses(listing, chain, BOOSTED_LIMIT)
        logger.debug("[dexscreener] %d boosted tokens on %s", len(addresses), chain)
        return await self.fetch_token_pairs(addresses)

    def get_stats(self) -> dict[str, Any]:
        return {
            "source": self.name,
            "request_count": self.request_count,
            "error_count": self.error_count,
        }
