"""System endpoints — health."""

from __future__ import annotations

from fastapi import APIRouter, Request

from dexsignal import __version__

router = APIRouter(tags=["system"])


@router.get("/health")
async def health(request: Request):
    from dexsignal.api.app import get_uptime
    pipeline = request.app.state.pipeline

    return {
        "status": "ok",
        "version": __version__,
        "uptime_seconds": round(get_uptime(), 1),
        "chain": pipeline.chain,
        "source": pipeline.source.name,
        "source_stats": pipeline.source.get_stats(),
        "analysis_configured": pipeline.analysis_configured,
        "analysis_usage": pipeline.analysis_usage,
        "cycles": pipeline.cycles,
        "cache": pipeline.cache.get_stats(),
    }
