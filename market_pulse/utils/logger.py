"""
MARKET PULSE — Structured Logging
structlog key/value events; JSON in production, console renderer in debug.
"""
import logging
import sys
from typing import Optional

import structlog

from market_pulse.config.settings import get_settings

# Libraries whose INFO chatter drowns out poll-cycle events
NOISY_LOGGERS = ("aiohttp.access", "httpx", "uvicorn.access")


def setup_logging(level: Optional[str] = None, json_logs: Optional[bool] = None) -> None:
    """Configure structlog and stdlib logging for the API and the watcher."""
    settings = get_settings()
    log_level = getattr(logging, (level or settings.log_level).upper(), logging.INFO)
    if json_logs is None:
        json_logs = not settings.debug

    renderer = structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer()
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))


def get_logger(name: Optional[str] = None):
    """Lazy structured logger tagging every event with its component name."""
    name = name or "market_pulse"
    return structlog.get_logger(name, component=name)
