"""Logging setup: stdlib logging as the sink, structlog for event-style calls."""

import logging
import sys

import structlog

from krolist.config import settings


def configure_logging(level: int | None = None) -> None:
    """Configure stdlib logging and route structlog through it.

    Args:
        level: Log level; defaults to INFO in debug mode, WARNING otherwise
    """
    if level is None:
        level = logging.INFO if settings.DEBUG else logging.WARNING

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.KeyValueRenderer(key_order=["event"]),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
