"""
Logging setup for postgis-schema
Library modules log under the "postgis-schema" namespace; entry points
install the rich handler.
"""

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

from .config import settings

LOGGER_NAME = "postgis-schema"

# Initialize rich console for logging
console = Console()


def configure_logging(level: Optional[str] = None) -> logging.Logger:
    """Configure logging with rich and return the package logger."""
    logging.basicConfig(
        level=(level or settings.LOG_LEVEL).upper(),
        format=settings.LOG_FORMAT,
        handlers=[
            RichHandler(
                console=console,
                rich_tracebacks=True,
                show_path=False,
                show_time=True,
                markup=True
            )
        ],
        force=True,
    )
    return logging.getLogger(LOGGER_NAME)
