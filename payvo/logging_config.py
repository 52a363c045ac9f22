"""
Structured logging setup.

Every module logs through structlog:

    import structlog
    logger = structlog.get_logger(__name__)
    logger.info("ledger.send", amount_cents=2500, contact="Alice Johnson")

configure_logging() is called once from the application lifespan (and
from tests that want readable output). Until it runs, structlog's
defaults print to stdout, which is fine for scripts.

Never log voice passphrases or phone numbers.
"""

import logging
import sys

import structlog

from payvo.config import settings


def configure_logging(level: str | None = None, json_output: bool | None = None) -> None:
    """
    Configure stdlib logging and structlog processors.

    Args:
        level: Log level name; defaults to settings.LOG_LEVEL.
        json_output: Render JSON lines (True) or console key=value (False);
                     defaults to settings.LOG_JSON.
    """
    level_name = (level or settings.LOG_LEVEL).upper()
    use_json = settings.LOG_JSON if json_output is None else json_output

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level_name, logging.INFO),
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if use_json
        else structlog.dev.ConsoleRenderer()
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
