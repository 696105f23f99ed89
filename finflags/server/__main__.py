"""
Run the Context Store with uvicorn.

Usage:
  python -m finflags.server [--host 0.0.0.0] [--port 3001] [--reload]
"""

from __future__ import annotations

import argparse
import logging

import uvicorn

from finflags.common.logging import init_structured_logging
from finflags.server.config import get_settings

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    settings = get_settings()

    parser = argparse.ArgumentParser(description="Feature flag Context Store")
    parser.add_argument("--host", default=settings.HOST, help="Listen host")
    parser.add_argument("--port", type=int, default=settings.PORT, help="Listen port")
    parser.add_argument("--reload", action="store_true", help="Auto-reload on code changes (development)")
    args = parser.parse_args(argv)

    init_structured_logging(service="context-store", env=settings.APP_ENV, level=settings.LOG_LEVEL)
    logger.info(f"Server running on http://{args.host}:{args.port}")

    # uvicorn translates SIGINT/SIGTERM into lifespan shutdown, which closes the provider.
    uvicorn.run(
        "finflags.server.app:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_config=None,
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
