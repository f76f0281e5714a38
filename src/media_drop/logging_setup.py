# src/media_drop/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path


class _ConsoleNoiseFilter(logging.Filter):
    """
    Keep the console readable while the server runs:
    - allow media_drop logs
    - keep uvicorn startup/error logs, drop per-request access lines below WARNING
    - suppress nio sync chatter unless WARNING+
    - suppress other third-party noise unless ERROR+
    """

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name

        if name.startswith("media_drop."):
            return True

        if name == "uvicorn.access":
            return record.levelno >= logging.WARNING
        if name.startswith("uvicorn"):
            return record.levelno >= logging.INFO

        if name == "py.warnings":
            return record.levelno >= logging.ERROR

        # NIO logs every sync response at INFO and crypto warnings in bulk.
        if name.startswith("nio"):
            return record.levelno >= logging.WARNING

        return record.levelno >= logging.ERROR


def setup_logging(
    *,
    log_dir: str | Path = ".local/media-drop",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
) -> None:
    """
    Configure logging with:
    - Console handler: filtered for interactive use
    - File handler: full logs for debugging (<log_dir>/media-drop.log)

    Call this ONCE, before uvicorn starts (uvicorn is run with log_config=None so it reuses these handlers).
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "media-drop.log"

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    ch = logging.StreamHandler(sys.stderr)
    ch.setLevel(console_level)
    ch.setFormatter(fmt)
    ch.addFilter(_ConsoleNoiseFilter())
    root.addHandler(ch)

    fh = logging.FileHandler(str(log_file), encoding="utf-8")
    fh.setLevel(file_level)
    fh.setFormatter(fmt)
    root.addHandler(fh)

    logging.captureWarnings(True)
