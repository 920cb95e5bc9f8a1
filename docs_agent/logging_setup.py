"""Structured logging configuration."""
import logging
import sys

import structlog

from docs_agent import config


def configure_logging(level: str = None) -> None:
    """Route structlog events through stdlib logging as JSON lines.

    Args:
        level: Log level name (defaults to config.LOG_LEVEL)
    """
    level = (level or config.LOG_LEVEL).upper()

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level, logging.INFO),
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
