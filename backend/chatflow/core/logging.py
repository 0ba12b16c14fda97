"""structlog configuration for chatflow."""

import logging
from typing import Optional

import structlog

from chatflow.config import get_core_settings


def configure_logging(level: Optional[str] = None, json_output: bool = False) -> None:
    """Configure structlog for the pipeline.

    Args:
        level: Log level name (defaults to CoreSettings.log_level)
        json_output: Render JSON lines instead of console output
    """
    level_name = (level or get_core_settings().log_level).upper()
    numeric_level = logging.getLevelName(level_name)
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer(colors=False)
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        cache_logger_on_first_use=False,
    )
