"""
functions/utils/logging_config.py

One-time structlog setup for the service.

- Level comes from settings.log_level, or DEBUG when settings.debug is set
- Console renderer for local runs, JSON renderer when settings.log_json is set
- Context variables (correlation_id) bound by the request middleware are
  merged into every event
"""

from __future__ import annotations

import logging
import sys

import structlog

from functions.utils.settings import Settings


def resolve_log_level(settings: Settings) -> int:
    if settings.debug:
        return logging.DEBUG
    level = logging.getLevelName(str(settings.log_level).upper())
    return level if isinstance(level, int) else logging.INFO


def configure_logging(settings: Settings) -> None:
    level = resolve_log_level(settings)

    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=level)

    if settings.log_json:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=not settings.no_color)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )
