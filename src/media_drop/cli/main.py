# src/media_drop/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then serves the HTTP API with uvicorn.
The Matrix connector and every task timer run on uvicorn's event loop; they are
started/stopped by the FastAPI lifespan.
"""

from __future__ import annotations

import argparse
import logging

import uvicorn

from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..logging_setup import setup_logging
from ..server.app import create_app

logger = logging.getLogger(__name__)


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="media-drop", description="Schedule media posts into chat rooms.")
    parser.add_argument("--host", default=None, help="Bind address (default: MEDIADROP_HOST or 0.0.0.0)")
    parser.add_argument("--port", type=int, default=None, help="Port (default: MEDIADROP_PORT / PORT or 3000)")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = _parse_args(argv)
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)
    setup_logging(log_dir=settings.data_dir, console_level=console_level)

    logging.getLogger("nio").setLevel(max(console_level, logging.INFO))
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("aiohttp").setLevel(logging.WARNING)

    host = args.host or settings.host
    port = args.port or settings.port

    state = create_initial_state(settings=settings)
    app = create_app(state)

    logger.info("Starting %s on %s:%d (matrix=%s)", settings.app_name, host, port, settings.matrix_enabled)

    # uvicorn handles SIGINT/SIGTERM and runs the lifespan shutdown (connector stop, timers disarmed).
    server = uvicorn.Server(uvicorn.Config(app, host=host, port=port, log_config=None))
    server.run()
    logger.info("Bye.")


if __name__ == "__main__":
    main()
