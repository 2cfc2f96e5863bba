"""structlog configuration."""

import logging
import sys

import structlog

from offboard_api.core.config import settings

logger = structlog.get_logger()


def setup_logging(level: str | None = None, fmt: str | None = None) -> None:
    """
    Configure structlog for the process.

    JSON output by default; LOG_FORMAT=console switches to the dev renderer.
    Context bound with structlog.contextvars (e.g. request_id) is merged into
    every event.
    """
    level_name = (level or settings.log_level).upper()
    log_level = logging.getLevelNamesMapping().get(level_name, logging.INFO)

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level)

    renderer: structlog.types.Processor
    if (fmt or settings.log_format) == "console":
        renderer = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
