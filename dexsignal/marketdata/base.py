"""Abstract pair source that every market-data provider implements."""

from __future__ import annotations

import abc
from typing import Any


class PairSource(abc.ABC):
    """A provider of raw DEX pair records.

    Every fetch returns a list of raw pair dicts in DexScreener's shape
    (``chainId``, ``pairAddress``, ``baseToken``, ``priceChange`` …) and raises
    :class:`dexsignal.errors.UpstreamUnavailable` when the provider cannot
    answer. Callers decide whether that is fatal.
    """

    @property
    @abc.abstractmethod
    def name(self) -> str:
        """Short provider identifier, e.g. 'dexscreener'."""

    @abc.abstractmethod
    async def fetch_token_pairs(self, addresses: list[str]) -> list[dict[str, Any]]:
        """All pairs trading any of ``addresses``."""

    @abc.abstractmethod
    async def fetch_trending_pairs(self, chain: str) -> list[dict[str, Any]]:
        """Pairs of the tokens currently in the provider's trending listing."""

    @abc.abstractmethod
    async def fetch_boosted_pairs(self, chain: str) -> list[dict[str, Any]]:
        """Pairs of the tokens currently in the provider's boosted listing."""

    async def close(self) -> None:
        return None

    def get_stats(self) -> dict[str, Any]:
        return {"source": self.name}
