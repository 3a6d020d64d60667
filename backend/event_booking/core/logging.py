"""
structlog configuration for the booking service.

Every log line is an event name plus key/value context, e.g.
``booking_finalized booking_id=... event_id=... participants=3``.
Production renders JSON, everything else a colored console line. Request
context (request_id, method, path) is merged in from contextvars by
RequestLoggingMiddleware.
"""

import logging
import sys
from typing import Optional

import structlog
from event_booking.core.config import Settings, get_settings

# Name of the root handler we own; replaced, never duplicated, on re-setup
_HANDLER_NAME = "event_booking"

_QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "aiosqlite")


def _renderer(settings: Settings):
    if settings.ENVIRONMENT == "production":
        return structlog.processors.JSONRenderer()
    # No ANSI colors in test output
    return structlog.dev.ConsoleRenderer(colors=settings.ENVIRONMENT != "test")


def _install_handler(formatter: logging.Formatter, level: int) -> None:
    root = logging.getLogger()
    for handler in [h for h in root.handlers if h.get_name() == _HANDLER_NAME]:
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(formatter)
    root.addHandler(handler)
    root.setLevel(level)


def setup_logging(settings: Optional[Settings] = None) -> None:
    """Configure structlog and the root handler. Safe to call repeatedly."""
    settings = settings or get_settings()

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]
    if settings.ENVIRONMENT == "production":
        processors.append(structlog.processors.format_exc_info)

    structlog.configure(
        processors=[*processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            _renderer(settings),
        ]
    )
    _install_handler(formatter, getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str = __name__) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
