"""Structured logging configuration."""

from __future__ import annotations

import logging
import sys

import structlog
from structlog.types import Processor

from hall_of_elite.config import settings


def configure_logging(log_format: str | None = None, level: str | None = None) -> None:
    """Configure structlog with JSON (production) or console (development) rendering.

    ``log_format`` and ``level`` default to ``HOE_LOG_FORMAT`` and
    ``HOE_LOG_LEVEL``.  Stdlib loggers (uvicorn, the HTTP routers) are routed
    through the same renderer so every line has the same shape.
    """
    log_format = (log_format or settings.LOG_FORMAT).lower()
    level_no = logging.getLevelName((level or settings.LOG_LEVEL).upper())
    if not isinstance(level_no, int):
        level_no = logging.INFO

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if log_format == "json":
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
        foreign_pre_chain=shared_processors,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level_no)
