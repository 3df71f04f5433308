"""
Structured Logging

DESIGN DECISION: Every state change and every storage round trip is
logged as a structured event (snake_case event name plus key/value
context). Logs are local only; nothing is persisted as an audit trail.

Entry points (API server, Streamlit app) call configure_logging() once.
Library modules just call structlog.get_logger(__name__).
"""

import logging
import sys
from typing import Optional

import structlog

from water_billing.config import AppSettings, get_settings


def configure_logging(level: str = "INFO", json_output: bool = True) -> None:
    """
    Configure structlog on top of the stdlib logging module.

    Args:
        level: Root log level name
        json_output: JSON lines when True, colourless console output otherwise
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper(), logging.INFO),
        force=True,
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer(colors=False)
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_from_settings(settings: Optional[AppSettings] = None) -> None:
    """Configure logging from AppSettings (loaded from the environment if omitted)."""
    settings = settings or get_settings().app
    configure_logging(level=settings.log_level, json_output=settings.log_json)
