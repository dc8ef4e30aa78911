"""
Artifact: syllabus_service/syllabus_ingest/core/logging.py
Purpose: Provides centralized logging configuration and named logger accessors.
Preconditions:
- Python logging module is available.
Inputs:
- Acceptable: Logger names as non-empty strings; LOG_LEVEL as a standard level name.
- Unacceptable: Invalid logger names that are not string-compatible.
Postconditions:
- Root logging is configured once and loggers can be retrieved by name.
Returns:
- `configure_logging` returns None; `get_logger` returns `logging.Logger`.
Errors/Exceptions:
- No custom exceptions; unknown level names fall back to DEBUG.
"""

import logging

from .config import settings


def configure_logging() -> None:
    """Apply process-wide logging configuration for the service."""
    level = getattr(logging, settings.log_level(), logging.DEBUG)
    if not isinstance(level, int):
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def get_logger(name: str) -> logging.Logger:
    """Return a named logger instance."""
    return logging.getLogger(name)
