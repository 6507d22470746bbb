"""Logging setup for the Continuum command line interface."""

import logging
import os
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

LOG_LEVEL_ENV_VAR = "CONTINUUM_LOG_LEVEL"
DEFAULT_LOG_LEVEL = "WARNING"


def resolve_log_level(level: Optional[str] = None) -> str:
    """Return the effective level name from the option or ``CONTINUUM_LOG_LEVEL``."""
    resolved = (level or os.environ.get(LOG_LEVEL_ENV_VAR) or DEFAULT_LOG_LEVEL).upper()
    if not isinstance(logging.getLevelName(resolved), int):
        raise ValueError(f"Unknown log level: {resolved}")
    return resolved


def setup_logging(level: Optional[str] = None) -> logging.Logger:
    """Route log records through a rich handler on stderr and return the package logger."""
    resolved = resolve_log_level(level)
    logging.basicConfig(
        level=resolved,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
        force=True,
    )
    package_logger = logging.getLogger("continuum")
    package_logger.setLevel(resolved)
    return package_logger
