"""structlog setup.

Request-scoped values (the request id) are bound with
``structlog.contextvars`` by the middleware and merged into every event.
"""

import logging

import structlog

from .config import settings


def configure_logging() -> None:
    level = logging.DEBUG if settings.debug else logging.INFO
    renderer = (
        structlog.dev.ConsoleRenderer()
        if settings.environment == "development"
        else structlog.processors.JSONRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=True,
    )
