"""Typed records flowing through the signal engine."""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass, field
from typing import Any


class SignalKind(str, enum.Enum):
    NEW = "NEW"
    BUY = "BUY"
    SELL = "SELL"
    RISK = "RISK"


@dataclass(frozen=True)
class PairSnapshot:
    """One trading pair as seen in a single refresh cycle.

    Built by :func:`dexsignal.engine.normalizer.normalize_pair`; every optional
    upstream field has already been defaulted and the derived fields
    (``total_txns_24h``, ``buy_ratio``, ``age_hours``) are filled in.
    """

    pair_id: str
    chain_id: str
    token_name: str = "Unknown"
    token_symbol: str = "???"
    token_address: str = ""
    price_usd: str | None = None
    price_display: str = "N/A"
    change_1h: float = 0.0
    change_6h: float = 0.0
    change_24h: float = 0.0
    volume_1h: float = 0.0
    volume_6h: float = 0.0
    volume_24h: float = 0.0
    liquidity_usd: float = 0.0
    fdv: float = 0.0
    buys_24h: int = 0
    sells_24h: int = 0
    created_at_ms: int | None = None
    total_txns_24h: int = 0
    buy_ratio: float = 0.5
    age_hours: float = math.inf


@dataclass(frozen=True)
class Signal:
    kind: SignalKind
    strength: int
    pair_id: str
    token_address: str
    token_symbol: str
    token_name: str
    price_display: str
    change_1h: float
    change_24h: float
    volume_24h: float
    liquidity_usd: float
    fdv: float
    reason: str
    chain_id: str = field(default="base")

    def to_dict(self) -> dict[str, Any]:
        """Wire shape consumed by the dashboard."""
        return {
            "type": self.kind.value,
            "strength": self.strength,
            "token": self.token_name,
            "symbol": self.token_symbol,
            "address": self.token_address,
            "price": self.price_display,
            "change1h": self.change_1h,
            "change24h": self.change_24h,
            "volume24h": self.volume_24h,
            "liquidity": self.liquidity_usd,
            "fdv": self.fdv,
            "pairAddress": self.pair_id,
            "chainId": self.chain_id,
            "reason": self.reason,
        }
