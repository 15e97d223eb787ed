"""Rule engine — classify one :class:`PairSnapshot` into at most one :class:`Signal`.

The rule book is an ordered tuple of steps. A :class:`Gate` ends evaluation
with no signal when it blocks; a :class:`Rule` ends evaluation with a signal
when it matches. The first step that fires decides the outcome, so the order of
``RULE_BOOK`` *is* the priority order: exclusion → NEW → RISK → liquidity
gate → BUY → SELL.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Iterable, Union

from dexsignal.engine.models import PairSnapshot, Signal, SignalKind

DENYLIST_SYMBOLS = frozenset(
    s.upper() for s in ("USDC", "USDT", "DAI", "USDbC", "WETH", "CBETH", "WSTETH")
)


@dataclass(frozen=True)
class Gate:
    name: str
    blocks: Callable[[PairSnapshot], bool]


@dataclass(frozen=True)
class Rule:
    name: str
    kind: SignalKind
    matches: Callable[[PairSnapshot], bool]
    score: Callable[[PairSnapshot], float]
    describe: Callable[[PairSnapshot], str]

    def apply(self, snap: PairSnapshot) -> Signal:
        return Signal(
            kind=self.kind,
            strength=clamp_strength(self.score(snap)),
            pair_id=snap.pair_id,
            token_address=snap.token_address,
            token_symbol=snap.token_symbol,
            token_name=snap.token_name,
            price_display=snap.price_display,
            change_1h=snap.change_1h,
            change_24h=snap.change_24h,
            volume_24h=snap.volume_24h,
            liquidity_usd=snap.liquidity_usd,
            fdv=snap.fdv,
            reason=self.describe(snap),
            chain_id=snap.chain_id,
        )


Step = Union[Gate, Rule]


def clamp_strength(raw: float) -> int:
    """Round half-up to an int and pin into [0, 100]."""
    return int(math.floor(min(100.0, max(0.0, raw)) + 0.5))


def _k(usd: float, places: int = 0) -> str:
    return f"${usd / 1000:.{places}f}K"


def _volume_to_liquidity(s: PairSnapshot) -> float:
    return s.volume_24h / s.liquidity_usd if s.liquidity_usd > 0 else math.inf


# ── gates ─────────────────────────────────────────────────────────────

def _is_dust_or_denylisted(s: PairSnapshot) -> bool:
    if s.liquidity_usd < 500 and s.volume_24h < 1000:
        return True
    return s.token_symbol.upper() in DENYLIST_SYMBOLS


EXCLUSION_GATE = Gate("exclusion", _is_dust_or_denylisted)
LIQUIDITY_GATE = Gate("thin_liquidity", lambda s: s.liquidity_usd < 1000)


# ── NEW ───────────────────────────────────────────────────────────────

def _new_listing_score(s: PairSnapshot) -> float:
    if s.liquidity_usd > 50_000:
        liquidity_bonus = 15
    elif s.liquidity_usd > 10_000:
        liquidity_bonus = 10
    else:
        liquidity_bonus = 0
    volume_bonus = 10 if s.volume_24h > 50_000 else 0
    return min(95, 70 + liquidity_bonus + volume_bonus)


NEW_LISTING = Rule(
    name="new_listing",
    kind=SignalKind.NEW,
    matches=lambda s: s.age_hours < 12 and s.liquidity_usd > 2000,
    score=_new_listing_score,
    describe=lambda s: (
        f"New pair {s.age_hours:.1f}h old • Liq {_k(s.liquidity_usd, 1)} • "
        f"Vol {_k(s.volume_24h)} • {s.total_txns_24h} txns"
    ),
)


# ── RISK ──────────────────────────────────────────────────────────────

RISK_VOLUME_OVER_LIQUIDITY = Rule(
    name="risk_volume_over_liquidity",
    kind=SignalKind.RISK,
    matches=lambda s: s.liquidity_usd < 5000 and s.volume_24h > 3 * s.liquidity_usd,
    score=lambda s: min(90, 70 + min(20, _volume_to_liquidity(s))),
    describe=lambda s: (
        f"Volume {_volume_to_liquidity(s):.0f}x liquidity, rug risk • "
        f"Liq ${s.liquidity_usd:.0f}"
    ),
)

RISK_DUMP_PATTERN = Rule(
    name="risk_dump_pattern",
    kind=SignalKind.RISK,
    matches=lambda s: s.sells_24h > 2 * s.buys_24h and s.change_24h < -15,
    score=lambda s: min(85, 60 + abs(s.change_24h)),
    describe=lambda s: (
        f"Dump pattern: {s.sells_24h} sells vs {s.buys_24h} buys • "
        f"{s.change_24h:.1f}% 24h"
    ),
)


# ── BUY ───────────────────────────────────────────────────────────────

def _momentum_score(s: PairSnapshot) -> float:
    if s.volume_24h > 100_000:
        volume_tier = 15
    elif s.volume_24h > 30_000:
        volume_tier = 8
    else:
        volume_tier = 0
    buy_ratio_bonus = 10 if s.buy_ratio > 0.65 else 0
    liquidity_bonus = 5 if s.liquidity_usd > 50_000 else 0
    return min(95, 35 + min(30, s.change_1h) + volume_tier + buy_ratio_bonus + liquidity_bonus)


BUY_MOMENTUM = Rule(
    name="buy_momentum",
    kind=SignalKind.BUY,
    matches=lambda s: s.change_1h > 8 and s.volume_1h > 5000 and s.buy_ratio > 0.55,
    score=_momentum_score,
    describe=lambda s: (
        f"+{s.change_1h:.1f}% 1h • Vol {_k(s.volume_24h)} • "
        f"{s.buy_ratio * 100:.0f}% buys • Liq {_k(s.liquidity_usd)}"
    ),
)

BUY_ACCUMULATION = Rule(
    name="buy_accumulation",
    kind=SignalKind.BUY,
    matches=lambda s: (
        s.change_6h > 5 and s.change_24h > 10 and s.buy_ratio > 0.6 and s.volume_24h > 20_000
    ),
    score=lambda s: min(88, 40 + s.change_24h * 0.5 + (s.buy_ratio - 0.5) * 100),
    describe=lambda s: (
        f"Accumulation: +{s.change_24h:.1f}% 24h • {s.buy_ratio * 100:.0f}% buys • "
        f"Vol {_k(s.volume_24h)}"
    ),
)

BUY_VOLUME_SPIKE = Rule(
    name="buy_volume_spike",
    kind=SignalKind.BUY,
    matches=lambda s: (
        s.volume_1h > 0.5 * s.volume_6h and s.volume_1h > 10_000 and s.change_1h > 3
    ),
    score=lambda s: min(
        82, 45 + min(25, s.change_1h * 2) + (10 if s.volume_1h > 50_000 else 0)
    ),
    describe=lambda s: (
        f"Volume spike: {_k(s.volume_1h, 1)} last hour • +{s.change_1h:.1f}% 1h"
    ),
)


# ── SELL ──────────────────────────────────────────────────────────────

SELL_REVERSAL = Rule(
    name="sell_reversal",
    kind=SignalKind.SELL,
    matches=lambda s: s.change_1h < -8 and s.volume_1h > 5000,
    score=lambda s: min(
        90, 40 + abs(s.change_1h) + (10 if s.sells_24h > s.buys_24h else 0)
    ),
    describe=lambda s: (
        f"{s.change_1h:.1f}% 1h drop • 24h: {s.change_24h:.1f}% • Vol {_k(s.volume_24h)}"
    ),
)

SELL_SUSTAINED_BLEED = Rule(
    name="sell_sustained_bleed",
    kind=SignalKind.SELL,
    matches=lambda s: s.change_24h < -20 and s.change_6h < -10 and s.volume_24h > 10_000,
    score=lambda s: min(85, 45 + abs(s.change_24h) * 0.5),
    describe=lambda s: (
        f"Sustained bleed: {s.change_24h:.1f}% 24h, {s.change_6h:.1f}% 6h • Fading"
    ),
)


RULE_BOOK: tuple[Step, ...] = (
    EXCLUSION_GATE,
    NEW_LISTING,
    RISK_VOLUME_OVER_LIQUIDITY,
    RISK_DUMP_PATTERN,
    LIQUIDITY_GATE,
    BUY_MOMENTUM,
    BUY_ACCUMULATION,
    BUY_VOLUME_SPIKE,
    SELL_REVERSAL,
    SELL_SUSTAINED_BLEED,
)


def first_match(snap: PairSnapshot, book: Iterable[Step] = RULE_BOOK) -> Rule | None:
    """Walk the rule book in order; the first gate that blocks or rule that matches wins."""
    for step in book:
        if isinstance(step, Gate):
            if step.blocks(snap):
                return None
        elif step.matches(snap):
            return step
    return None


def evaluate(snap: PairSnapshot, book: Iterable[Step] = RULE_BOOK) -> Signal | None:
    rule = first_match(snap, book)
    return rule.apply(snap) if rule is not None else None


def classify_all(snapshots: Iterable[PairSnapshot], book: Iterable[Step] = RULE_BOOK) -> list[Signal]:
    book = tuple(book)
    out: list[Signal] = []
    for snap in snapshots:
        signal = evaluate(snap, book)
        if signal is not None:
            out.append(signal)
    return out
