"""dexsignal — CLI entrypoint.

Serve the API or run a single evaluation cycle::

    python -m dexsignal.main --server     # default
    python -m dexsignal.main --once       # one cycle, JSON to stdout
    python -m dexsignal.main --once --mock
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

from dexsignal import __version__
from dexsignal.config import get_settings
from dexsignal.engine.pipeline import build_pipeline
from dexsignal.utils import setup_logging

logger = logging.getLogger("dexsignal")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dexsignal",
        description="dexsignal — DEX pair signal classifier",
    )
    parser.add_argument("--server", action="store_true", help="Run FastAPI server (default)")
    parser.add_argument("--once", action="store_true", help="Run a single cycle, print JSON, exit")
    parser.add_argument("--mock", action="store_true", help="Use the offline mock market-data source")
    parser.add_argument("--version", action="version", version=f"dexsignal {__version__}")
    return parser


async def _run_once(mock: bool) -> int:
    pipeline = build_pipeline(mock=mock or None)
    try:
        feed = await pipeline.refresh()
    finally:
        await pipeline.close()
    json.dump(feed.to_dict(), sys.stdout, indent=2)
    sys.stdout.write("\n")
    return 0


def _serve(mock: bool) -> None:
    import uvicorn
    from dexsignal.api.app import create_app

    settings = get_settings()
    app = create_app(build_pipeline(settings, mock=mock or None), settings)
    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
    )


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)

    settings = get_settings()
    setup_logging(settings.log_level)

    try:
        if args.once:
            return asyncio.run(_run_once(args.mock))
        _serve(args.mock)
    except KeyboardInterrupt:
        logger.info("Interrupted — shutting down")
    return 0


if __name__ == "__main__":
    sys.exit(main())
