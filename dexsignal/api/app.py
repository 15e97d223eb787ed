"""FastAPI application factory with lifespan, CORS, and routers."""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from dexsignal import __version__
from dexsignal.config import Settings, get_settings
from dexsignal.engine.pipeline import SignalPipeline, build_pipeline

logger = logging.getLogger(__name__)

_start_time: float = 0.0


def get_uptime() -> float:
    return time.time() - _start_time if _start_time else 0.0


@asynccontextmanager
async def _lifespan(app: FastAPI):
    global _start_time
    _start_time = time.time()
    logger.info("dexsignal API v%s starting (chain=%s)", __version__, app.state.pipeline.chain)
    yield
    await app.state.pipeline.close()
    logger.info("dexsignal API shutting down")


def create_app(
    pipeline: SignalPipeline | None = None,
    settings: Settings | None = None,
) -> FastAPI:
    """Build and return the fully-configured FastAPI application.

    ``settings`` drive both the pipeline (when one is not passed in) and the
    per-request limits, so the two never disagree.
    """
    app = FastAPI(
        title="dexsignal",
        description="DEX trading-pair signals: new listings, momentum, reversals, rug risk",
        version=__version__,
        lifespan=_lifespan,
    )
    app.state.settings = settings or get_settings()
    app.state.pipeline = pipeline or build_pipeline(app.state.settings)

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routers
    from dexsignal.api.routes import signals, system
    app.include_router(signals.router, prefix="/api")
    app.include_router(system.router, prefix="/api")

    return app
