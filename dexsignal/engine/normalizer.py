"""Snapshot normalizer — raw DexScreener pair record → :class:`PairSnapshot`.

Upstream payloads are loose JSON: any field may be missing, null, a number or
a numeric string. Everything is defaulted here so nothing downstream has to
care about absent fields.
"""

from __future__ import annotations

import math
from typing import Any

from dexsignal.engine.models import PairSnapshot
from dexsignal.utils import now_ms as _now_ms

_MS_PER_HOUR = 3_600_000


def _safe_float(value: Any, default: float = 0.0) -> float:
    try:
        out = float(value) if value is not None else default
    except (ValueError, TypeError):
        return default
    return out if math.isfinite(out) else default


def _safe_int(value: Any, default: int = 0) -> int:
    try:
        out = int(float(value)) if value is not None else default
    except (ValueError, TypeError, OverflowError):
        return default
    return max(out, 0)


def _safe_str(value: Any, default: str = "") -> str:
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        return default
    text = str(value).strip()
    return text or default


def _epoch_ms(value: Any) -> int | None:
    if not value:
        return None
    try:
        return int(value)
    except (ValueError, TypeError, OverflowError):
        return None


def _section(raw: dict[str, Any], key: str) -> dict[str, Any]:
    value = raw.get(key)
    return value if isinstance(value, dict) else {}


def to_precision(value: float, digits: int = 4) -> str:
    """Render ``value`` with ``digits`` significant digits, JS ``toPrecision`` style."""
    if value == 0:
        return f"{0:.{digits - 1}f}"
    mantissa, exp_text = f"{value:.{digits - 1}e}".split("e")
    exponent = int(exp_text)
    if exponent < -6 or exponent >= digits:
        sign = "+" if exponent >= 0 else "-"
        return f"{mantissa}e{sign}{abs(exponent)}"
    return f"{value:.{max(0, digits - 1 - exponent)}f}"


def format_price(price_usd: Any) -> str:
    """``$`` + 4 significant digits, or ``"N/A"`` when there is no usable price."""
    if price_usd is None or price_usd == "":
        return "N/A"
    try:
        price = float(price_usd)
    except (ValueError, TypeError):
        return "N/A"
    if not math.isfinite(price):
        return "N/A"
    return f"${to_precision(price)}"


def pair_chain(raw: dict[str, Any]) -> str:
    return str(raw.get("chainId") or "").strip().lower()


def normalize_pair(
    raw: dict[str, Any],
    chain: str = "base",
    now_ms: int | None = None,
) -> PairSnapshot | None:
    """Build a :class:`PairSnapshot`, or ``None`` if the pair is not on ``chain``."""
    if not isinstance(raw, dict) or pair_chain(raw) != chain.lower():
        return None
    now = _now_ms() if now_ms is None else now_ms

    token = _section(raw, "baseToken")
    price_change = _section(raw, "priceChange")
    volume = _section(raw, "volume")
    txns_24h = _section(_section(raw, "txns"), "h24")

    buys = _safe_int(txns_24h.get("buys"))
    sells = _safe_int(txns_24h.get("sells"))
    total = buys + sells

    created_at_ms = _epoch_ms(raw.get("pairCreatedAt"))
    age_hours = (now - created_at_ms) / _MS_PER_HOUR if created_at_ms else math.inf

    price_usd = raw.get("priceUsd")
    price_usd = str(price_usd) if price_usd not in (None, "") else None

    return PairSnapshot(
        pair_id=str(raw.get("pairAddress") or ""),
        chain_id=chain.lower(),
        token_name=_safe_str(token.get("name"), "Unknown"),
        token_symbol=_safe_str(token.get("symbol"), "???"),
        token_address=_safe_str(token.get("address")),
        price_usd=price_usd,
        price_display=format_price(price_usd),
        change_1h=_safe_float(price_change.get("h1")),
        change_6h=_safe_float(price_change.get("h6")),
        change_24h=_safe_float(price_change.get("h24")),
        volume_1h=_safe_float(volume.get("h1")),
        volume_6h=_safe_float(volume.get("h6")),
        volume_24h=_safe_float(volume.get("h24")),
        liquidity_usd=_safe_float(_section(raw, "liquidity").get("usd")),
        fdv=_safe_float(raw.get("fdv")),
        buys_24h=buys,
        sells_24h=sells,
        created_at_ms=created_at_ms,
        total_txns_24h=total,
        buy_ratio=buys / total if total > 0 else 0.5,
        age_hours=age_hours,
    )


def describe_token(raw: dict[str, Any], now_ms: int | None = None) -> dict[str, Any]:
    """Summary of a pair's token handed to the analyst prompt and returned to clients."""
    now = _now_ms() if now_ms is None else now_ms
    token = _section(raw, "baseToken")
    price_change = _section(raw, "priceChange")
    created_at_ms = _epoch_ms(raw.get("pairCreatedAt"))
    pair_age = f"{(now - created_at_ms) / _MS_PER_HOUR:.1f}h" if created_at_ms else "unknown"
    return {
        "name": token.get("name"),
        "symbol": token.get("symbol"),
        "price": raw.get("priceUsd"),
        "change1h": price_change.get("h1"),
        "change24h": price_change.get("h24"),
        "volume24h": _section(raw, "volume").get("h24"),
        "liquidity": _section(raw, "liquidity").get("usd"),
        "pairAge": pair_age,
        "txns24h": _section(raw, "txns").get("h24"),
    }
