"""Market data sources for dexsignal."""

from .base import PairSource
from .dexscreener import DexScreenerClient
from .mock import MockPairSource

__all__ = ["PairSource", "DexScreenerClient", "MockPairSource"]
