"""Signal endpoints — ranked feed, summary, per-token analysis."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from dexsignal.config import Settings
from dexsignal.engine.pipeline import SignalPipeline
from dexsignal.engine.ranker import summarize
from dexsignal.errors import MalformedInput

logger = logging.getLogger(__name__)

router = APIRouter(tags=["signals"])


class AnalyzeRequest(BaseModel):
    address: str | None = None


def get_pipeline(request: Request) -> SignalPipeline:
    return request.app.state.pipeline


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def caller_is_privileged(x_caller_tier: str | None = Header(default=None)) -> bool:
    """Entitlement predicate read from the ``X-Caller-Tier`` header.

    This default is NOT an access control: any client can send the header. It
    is only meaningful behind a gateway that strips and sets it. Deployments
    without one must override this dependency with a real entitlement check.
    """
    tier = (x_caller_tier or "").strip().lower()
    return bool(tier) and tier != "free"


@router.get("/signals")
async def list_signals(
    pipeline: SignalPipeline = Depends(get_pipeline),
    privileged: bool = Depends(caller_is_privileged),
    settings: Settings = Depends(get_app_settings),
):
    try:
        feed = await pipeline.refresh()
    except Exception as exc:
        logger.exception("Signal cycle failed")
        return JSONResponse({"error": str(exc), "signals": []}, status_code=500)

    payload = feed.to_dict()
    hidden = 0
    if not privileged:
        limit = settings.free_signal_limit
        hidden = max(0, len(payload["signals"]) - limit)
        payload["signals"] = payload["signals"][:limit]
    payload["hidden"] = hidden
    return payload


@router.get("/signals/summary")
async def signals_summary(pipeline: SignalPipeline = Depends(get_pipeline)):
    try:
        feed = await pipeline.refresh()
    except Exception as exc:
        logger.exception("Signal cycle failed")
        return JSONResponse({"error": str(exc)}, status_code=500)
    return {
        **summarize(feed.signals),
        "cached": feed.cached,
        "pairsScanned": feed.pairs_scanned,
    }


@router.post("/analyze")
async def analyze_token(
    body: AnalyzeRequest,
    pipeline: SignalPipeline = Depends(get_pipeline),
):
    try:
        return await pipeline.analyze_token(body.address)
    except MalformedInput as exc:
        return JSONResponse({"error": str(exc)}, status_code=400)
    except Exception as exc:
        logger.exception("Token analysis failed for %s", body.address)
        return JSONResponse({"error": str(exc)}, status_code=500)
