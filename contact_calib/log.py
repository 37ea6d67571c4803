"""
Logging configuration for contact calibration.

structlog on top of the standard library logger; modules obtain loggers
with ``get_logger(__name__)``.
"""

from __future__ import annotations

import logging
import sys

import structlog
from structlog.types import FilteringBoundLogger


def configure_logging(
    level: str = 'INFO',
    format_json: bool = False,
    include_timestamp: bool = True,
) -> None:
    """
    Configure structlog for the whole application.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_json: Emit JSON lines instead of the console renderer
        include_timestamp: Add an ISO timestamp to every event
    """
    log_level = getattr(logging, level.upper())

    logging.basicConfig(
        level=log_level,
        stream=sys.stdout,
        format='%(message)s',
    )

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if include_timestamp:
        processors.append(structlog.processors.TimeStamper(fmt='iso'))

    if format_json:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> FilteringBoundLogger:
    return structlog.get_logger(name)
