from __future__ import annotations

import asyncio
from typing import Any

import pytest

from conftest import FakeAnalyst, FakeClock, FakeSource, build_raw_pair
from dexsignal.config import Settings
from dexsignal.engine.cache import SignalCache
from dexsignal.engine.pipeline import (
    ANALYSIS_FAILED,
    ANALYSIS_UNAVAILABLE,
    SignalPipeline,
    build_pipeline,
    gather_fail_open,
)
from dexsignal.errors import MalformedInput, UpstreamUnavailable
from dexsignal.marketdata.base import PairSource


def _pipeline(source: PairSource, clock: FakeClock | None = None, **kw: Any) -> SignalPipeline:
    clock = clock or FakeClock()
    return SignalPipeline(source, cache=SignalCache(ttl_ms=25_000, clock=clock), clock=clock, **kw)


def _new_pair(i: int, liquidity: float = 60_000, chain: str = "base") -> dict[str, Any]:
    return build_raw_pair(pair=f"0xpair{i}", token=f"0xtok{i}", symbol=f"T{i}", chain=chain,
                          liquidity=liquidity, v24=80_000, age_hours=3)


# ── fan-out / fan-in ──────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_gather_fail_open_degrades_failures_to_empty() -> None:
    async def ok() -> list[dict[str, Any]]:
        return [{"pairAddress": "0x1"}]

    async def down() -> list[dict[str, Any]]:
        raise UpstreamUnavailable("x", "HTTP 503")

    async def broken() -> list[dict[str, Any]]:
        raise KeyError("pairs")

    out = await gather_fail_open({"a": ok(), "b": down(), "c": broken()})
    assert out == {"a": [{"pairAddress": "0x1"}], "b": [], "c": []}


@pytest.mark.asyncio
async def test_cycle_merges_sources_filters_chain_and_dedups() -> None:
    shared = _new_pair(1)
    source = FakeSource(
        weth=[shared, _new_pair(2)],
        usdc=[dict(shared), _new_pair(3, chain="ethereum")],
        trending=[_new_pair(4)],
        boosted=[build_raw_pair(pair="0xdust", token="0xdust", liquidity=100, v24=200)],
    )
    feed = await _pipeline(source).refresh()

    assert feed.cached is False
    assert feed.pairs_scanned == 4
    assert feed.sources == ("weth", "usdc", "trending", "boosted")
    assert {s.token_address for s in feed.signals} == {"0xtok1", "0xtok2", "0xtok4"}
    assert all(s.strength == 95 for s in feed.signals)

    payload = feed.to_dict()
    assert payload["count"] == 3
    assert payload["pairsScanned"] == 4
    assert payload["signals"][0]["type"] == "NEW"


@pytest.mark.asyncio
async def test_one_failing_source_does_not_abort_the_cycle() -> None:
    source = FakeSource(weth=[_new_pair(1)], trending=[_new_pair(2)], failing={"trending", "usdc"})
    feed = await _pipeline(source).refresh()
    assert [s.token_address for s in feed.signals] == ["0xtok1"]


@pytest.mark.asyncio
async def test_numeric_token_fields_do_not_sink_the_cycle() -> None:
    odd = _new_pair(9)
    odd["baseToken"] = {"name": 7, "symbol": 420, "address": 12345}
    feed = await _pipeline(FakeSource(weth=[_new_pair(1), odd, _new_pair(2)])).refresh()
    assert {s.token_address for s in feed.signals} == {"0xtok1", "0xtok2", "12345"}
    assert {s.token_symbol for s in feed.signals} >= {"420"}


@pytest.mark.asyncio
async def test_all_sources_down_is_an_empty_success() -> None:
    source = FakeSource(failing={"weth", "usdc", "trending", "boosted"})
    feed = await _pipeline(source).refresh()
    assert feed.signals == ()
    assert feed.pairs_scanned == 0


@pytest.mark.asyncio
async def test_two_hundred_qualifying_pairs_cap_at_fifty() -> None:
    pairs = [
        build_raw_pair(pair=f"0xp{i}", token=f"0xt{i}", symbol=f"T{i}", liquidity=30_000,
                       v24=50_000, h1=8.5 + (i % 25), v1=6000, buys=60, sells=40)
        for i in range(200)
    ]
    feed = await _pipeline(FakeSource(weth=pairs)).refresh()
    assert len(feed.signals) == 50
    strengths = [s.strength for s in feed.signals]
    assert strengths == sorted(strengths, reverse=True)
    assert strengths[-1] >= 35 + 8.5 + 8


# ── caching ───────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_refresh_serves_cache_within_ttl_then_recomputes() -> None:
    clock = FakeClock()
    source = FakeSource(weth=[_new_pair(1)])
    pipeline = _pipeline(source, clock)

    first = await pipeline.refresh()
    calls_after_first = len(source.calls)
    clock.now += 24_999
    second = await pipeline.refresh()
    assert second.cached is True
    assert second.signals == first.signals
    assert len(source.calls) == calls_after_first

    clock.now += 2
    third = await pipeline.refresh()
    assert third.cached is False
    assert len(source.calls) == 2 * calls_after_first
    assert pipeline.cycles == 2


@pytest.mark.asyncio
async def test_concurrent_misses_fan_out_once() -> None:
    source = FakeSource(weth=[_new_pair(1)], delay=0.01)
    pipeline = _pipeline(source)
    feeds = await asyncio.gather(*(pipeline.refresh() for _ in range(5)))
    assert pipeline.cycles == 1
    assert source.calls.count("weth") == 1
    assert sum(1 for f in feeds if not f.cached) == 1
    assert len({f.signals for f in feeds}) == 1


# ── analysis ──────────────────────────────────────────────────────────

@pytest.mark.asyncio
@pytest.mark.parametrize("address", [None, "", "   "])
async def test_analyze_requires_address(address) -> None:  # noqa: ANN001
    with pytest.raises(MalformedInput):
        await _pipeline(FakeSource()).analyze_token(address)


@pytest.mark.asyncio
async def test_analyze_reports_missing_chain_pairs() -> None:
    source = FakeSource(by_token={"0xabc": [_new_pair(1, chain="solana")]})
    out = await _pipeline(source).analyze_token("0xabc")
    assert out == {"error": "No Base chain pairs found", "analysis": None}


@pytest.mark.asyncio
async def test_analyze_lookup_failure_reads_as_no_data() -> None:
    source = FakeSource(failing={"token:0xabc"})
    out = await _pipeline(source).analyze_token("0xabc")
    assert out["analysis"] is None
    assert "error" in out


@pytest.mark.asyncio
async def test_analyze_without_key_returns_sentinel() -> None:
    source = FakeSource(by_token={"0xabc": [_new_pair(1), _new_pair(2)]})
    out = await _pipeline(source).analyze_token(" 0xabc ")
    assert out["analysis"] == ANALYSIS_UNAVAILABLE
    assert out["pairs"] == 2
    assert out["token"]["symbol"] == "T1"
    assert out["token"]["pairAge"] == "3.0h"


@pytest.mark.asyncio
async def test_analyze_asks_the_analyst_about_the_top_pair() -> None:
    analyst = FakeAnalyst()
    source = FakeSource(by_token={"0xabc": [_new_pair(7)]})
    out = await _pipeline(source, analyst=analyst).analyze_token("0xabc")
    assert out["analysis"] == "RISK 3/10. Momentum strong."
    system_prompt, user_prompt = analyst.prompts[0]
    assert "Base chain tokens" in system_prompt
    assert user_prompt.startswith("Analyze this Base chain token:")
    assert '"symbol": "T7"' in user_prompt


@pytest.mark.asyncio
async def test_analyst_failure_degrades_to_fixed_text() -> None:
    source = FakeSource(by_token={"0xabc": [_new_pair(7)]})
    out = await _pipeline(source, analyst=FakeAnalyst(fail=True)).analyze_token("0xabc")
    assert out["analysis"] == ANALYSIS_FAILED
    assert out["token"]["symbol"] == "T7"


@pytest.mark.asyncio
async def test_analyst_empty_reply_degrades_to_fixed_text() -> None:
    source = FakeSource(by_token={"0xabc": [_new_pair(7)]})
    out = await _pipeline(source, analyst=FakeAnalyst(reply="")).analyze_token("0xabc")
    assert out["analysis"] == ANALYSIS_FAILED


# ── wiring ────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_build_pipeline_with_mock_source() -> None:
    settings = Settings(groq_api_key="", mock_mode=False, max_signals=7, cache_ttl_ms=1000)
    pipeline = build_pipeline(settings, mock=True)
    assert pipeline.source.name == "mock"
    assert pipeline.analysis_configured is False
    assert pipeline.limit == 7

    feed = await pipeline.refresh()
    assert feed.cached is False
    assert 0 < len(feed.signals) <= 7
    symbols = {s.token_symbol.upper() for s in feed.signals}
    assert not symbols & {"USDC", "WETH", "DAI"}
    assert len({s.token_address.lower() for s in feed.signals}) == len(feed.signals)
    await pipeline.close()
