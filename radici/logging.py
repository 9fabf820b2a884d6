"""Structured logging for Radici.

Log events go through structlog on top of the standard ``logging`` package.
Only the ``radici`` logger is configured, so applications embedding the
package keep control of their root logger.
"""

import logging
import sys

import structlog
from structlog.stdlib import LoggerFactory

from radici.config import settings

ROOT_LOGGER_NAME = "radici"


def setup_logging(level: str | None = None, json_logs: bool | None = None) -> None:
    """Configure structlog and the ``radici`` logger.

    Safe to call more than once; later calls replace the handler.

    Args:
        level: Log level name (default: settings.log_level)
        json_logs: Render JSON instead of console output (default: settings.log_json)
    """
    level_name = (level or settings.log_level).upper()
    log_level = getattr(logging, level_name, logging.WARNING)
    use_json = settings.log_json if json_logs is None else json_logs

    package_logger = logging.getLogger(ROOT_LOGGER_NAME)
    package_logger.handlers.clear()

    # stderr keeps CLI output on stdout clean
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(log_level)
    package_logger.addHandler(handler)
    package_logger.setLevel(log_level)
    package_logger.propagate = False

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if use_json:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


def get_logger(name: str | None = None):
    """Get a structlog logger bound to ``name``."""
    return structlog.get_logger(name or ROOT_LOGGER_NAME)


# Initialize logging on import
setup_logging()
