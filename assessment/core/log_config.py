"""Logging configuration (loguru)."""

from __future__ import annotations

import sys
from pathlib import Path

from loguru import logger

from config import Settings, get_settings


def configure_logging(settings: Settings | None = None, *, level: str | None = None) -> None:
    """Install the stderr sink and, when configured, a rotating file sink."""
    settings = settings or get_settings()
    level = level or settings.log_level

    logger.remove()
    logger.add(
        sys.stderr,
        level=level,
        format="<dim>{time:HH:mm:ss}</dim> | <level>{level: <8}</level> | {name}:{line} - {message}",
    )

    if settings.log_file:
        log_path = Path(settings.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_path,
            level=level,
            rotation="10 MB",
            retention=5,
            enqueue=True,
        )
