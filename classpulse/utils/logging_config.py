"""Logging setup for scripts and local runs."""

import logging
import sys
from typing import Optional

from .config import get_settings


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging; level defaults to Settings.LOG_LEVEL."""
    level_name = (level or get_settings().LOG_LEVEL).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stdout,
        force=True,
    )

    # Quiet down chatty loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
