"""Pair-level deduplication across overlapping upstream queries."""

from __future__ import annotations

from typing import Any, Iterable


def pair_key(raw: dict[str, Any]) -> str:
    return str(raw.get("pairAddress") or "").strip().lower()


def dedup_pairs(records: Iterable[dict[str, Any]]) -> list[dict[str, Any]]:
    """Keep the first record seen for each pair address (case-insensitive).

    Records without a pair address cannot be told apart and are dropped.
    """
    seen: set[str] = set()
    out: list[dict[str, Any]] = []
    for raw in records:
        if not isinstance(raw, dict):
            continue
        key = pair_key(raw)
        if not key or key in seen:
            continue
        seen.add(key)
        out.append(raw)
    return out
