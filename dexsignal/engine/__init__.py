"""Signal engine: normalize, dedup, classify, rank, cache."""

from .cache import CacheEntry, SignalCache
from .dedup import dedup_pairs
from .models import PairSnapshot, Signal, SignalKind
from .normalizer import describe_token, format_price, normalize_pair
from .ranker import rank, summarize
from .rules import RULE_BOOK, Gate, Rule, evaluate, first_match

__all__ = [
    "CacheEntry",
    "Gate",
    "PairSnapshot",
    "RULE_BOOK",
    "Rule",
    "Signal",
    "SignalCache",
    "SignalKind",
    "dedup_pairs",
    "describe_token",
    "evaluate",
    "first_match",
    "format_price",
    "normalize_pair",
    "rank",
    "summarize",
]
