"""structlog configuration shared by the ``mdv`` and ``mdv-install`` entry points."""

from __future__ import annotations

import logging
import sys

import structlog

LEVEL_MAP = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def configure_logging(log_level: str = "warning") -> None:
    """Configure structlog and standard logging with the specified level.

    Log output goes to stderr so the wrapped binary keeps stdout to itself.

    Args:
        log_level: Log level string (debug, info, warning, error).
    """
    level = LEVEL_MAP.get(log_level.lower(), logging.WARNING)

    logging.basicConfig(
        format="%(message)s",
        level=level,
        stream=sys.stderr,
        force=True,
    )

    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(level),
        processors=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )
