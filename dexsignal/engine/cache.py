"""Single-slot, time-boxed cache for the latest ranked signal set.

Holds exactly one cycle's output. Entries are immutable and replaced
wholesale by :meth:`SignalCache.put`, so concurrent readers inside the TTL
window all see the same object.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable

from dexsignal.engine.models import Signal
from dexsignal.utils import now_ms

DEFAULT_TTL_MS = 25_000


@dataclass(frozen=True)
class CacheEntry:
    signals: tuple[Signal, ...]
    produced_at_ms: int
    meta: dict[str, Any] = field(default_factory=dict)


class SignalCache:
    """TTL cache with an injectable millisecond clock."""

    def __init__(self, ttl_ms: int = DEFAULT_TTL_MS, clock: Callable[[], int] = now_ms) -> None:
        self.ttl_ms = ttl_ms
        self._clock = clock
        self._entry: CacheEntry | None = None

        self.hits = 0
        self.misses = 0

    def get(self) -> CacheEntry | None:
        """Return the entry if it is younger than the TTL, else ``None`` (a miss)."""
        entry = self._entry
        if entry is None or self._clock() - entry.produced_at_ms >= self.ttl_ms:
            self.misses += 1
            return None
        self.hits += 1
        return entry

    def put(self, signals: Iterable[Signal], meta: dict[str, Any] | None = None) -> CacheEntry:
        """Overwrite the slot unconditionally, stamped with the current time."""
        entry = CacheEntry(
            signals=tuple(signals),
            produced_at_ms=self._clock(),
            meta=copy.deepcopy(dict(meta or {})),
        )
        self._entry = entry
        return entry

    def clear(self) -> None:
        self._entry = None

    def age_ms(self) -> int | None:
        if self._entry is None:
            return None
        return self._clock() - self._entry.produced_at_ms

    def get_stats(self) -> dict[str, Any]:
        total = self.hits + self.misses
        return {
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate_pct": (self.hits / total * 100) if total else 0.0,
            "ttl_ms": self.ttl_ms,
            "age_ms": self.age_ms(),
        }
