"""Loguru sinks for the worker and the CLI."""

import sys
from pathlib import Path

from loguru import logger

from schnitzarchiv.config import get_settings


def setup_logging(log_name: str = "worker") -> None:
    """Replace the default handler with a stderr sink and a rotating file sink."""
    settings = get_settings()
    log_dir = Path(settings.log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    logger.remove()
    logger.add(
        sys.stderr,
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
        level=settings.log_level,
        colorize=True,
    )
    logger.add(
        log_dir / f"{log_name}.log",
        format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} - {message}\n{exception}",
        level=settings.log_level,
        rotation="10 MB",
        retention="30 days",
        compression="zip",
    )
