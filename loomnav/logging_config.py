"""Logging configuration for the navigator.

The terminal belongs to the TUI, so log records only ever go to a file in
the data directory.
"""

from __future__ import annotations

from pathlib import Path

from loguru import logger

LOG_FILENAME = "loomnav.log"


def configure_logging(data_dir: Path, *, debug: bool = False) -> Path:
    """Route loguru output to ``<data_dir>/loomnav.log`` and return the path."""
    logger.remove()
    data_dir.mkdir(parents=True, exist_ok=True)
    path = data_dir / LOG_FILENAME
    logger.add(
        path,
        level="DEBUG" if debug else "INFO",
        format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{line} - {message}",
        rotation="5 MB",
        retention=3,
        backtrace=debug,
        diagnose=debug,
    )
    return path
