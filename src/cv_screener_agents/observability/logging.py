"""Structured logging configuration using structlog."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import structlog
from structlog.contextvars import bind_contextvars, clear_contextvars, merge_contextvars

if TYPE_CHECKING:
    from cv_screener_core.config.settings import Settings

_NOISY_LOGGERS = ("httpx", "httpcore", "sqlalchemy.engine", "uvicorn.access", "pdfminer")


def configure_logging(settings: Settings) -> None:
    """Send structlog and stdlib records through one formatter.

    ``json`` renders one object per line for the API server, with
    tracebacks folded into an ``exception`` field; ``console`` is the
    coloured developer output used by the CLI.
    """
    shared_processors: list[structlog.types.Processor] = [
        merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    renderer_chain: list[structlog.types.Processor]
    if settings.log_format == "json":
        renderer_chain = [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        renderer_chain = [structlog.dev.ConsoleRenderer()]

    level = logging.getLevelNamesMapping().get(settings.log_level.upper(), logging.INFO)

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
            *renderer_chain,
        ],
        foreign_pre_chain=shared_processors,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    # pdfminer logs a warning for every malformed glyph
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def bind_analysis_context(analysis_id: str, user_id: str | None = None) -> None:
    """Tag every following log entry of this task with the analysis (and user)."""
    if user_id is None:
        bind_contextvars(analysis_id=analysis_id)
    else:
        bind_contextvars(analysis_id=analysis_id, user_id=user_id)


def clear_analysis_context() -> None:
    """Drop the analysis tags bound by bind_analysis_context."""
    clear_contextvars()
