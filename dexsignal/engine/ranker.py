"""Ranker — one signal per token, strongest first, capped."""

from __future__ import annotations

from collections import Counter
from typing import Any, Iterable

from dexsignal.engine.models import Signal, SignalKind

DEFAULT_LIMIT = 50


def rank(signals: Iterable[Signal], limit: int = DEFAULT_LIMIT) -> list[Signal]:
    """Dedup by token address, sort by strength descending, truncate to ``limit``.

    Several pairs can trade the same token, so the key is the token address
    (case-insensitive). A later signal replaces the kept one only when its
    strength is strictly greater; ties keep the first seen. The sort is stable,
    so equal strengths keep first-seen order and the result is deterministic for
    a given input order.
    """
    best: dict[str, Signal] = {}
    for signal in signals:
        key = signal.token_address.lower()
        kept = best.get(key)
        if kept is None or signal.strength > kept.strength:
            best[key] = signal
    ordered = sorted(best.values(), key=lambda s: s.strength, reverse=True)
    return ordered[: max(0, limit)]


def summarize(signals: Iterable[Signal]) -> dict[str, Any]:
    """Per-kind tally and mean strength of a ranked list."""
    signals = list(signals)
    by_kind = Counter(s.kind for s in signals)
    avg = sum(s.strength for s in signals) / len(signals) if signals else 0.0
    return {
        "total": len(signals),
        "by_type": {kind.value: by_kind.get(kind, 0) for kind in SignalKind},
        "avg_strength": round(avg, 1),
        "top": signals[0].to_dict() if signals else None,
    }
