"""
Logging configuration
"""

import json
import logging
import sys
from typing import Optional

from core.config import settings

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s%(context_suffix)s"

# Driver loggers that report every cursor call at DEBUG
NOISY_LOGGERS = (
    "sqlalchemy.engine",
    "sqlalchemy.pool",
    "aiosqlite",
    "asyncpg",
    "aiomysql",
)


class ErrorContextFilter(logging.Filter):
    """
    Render the ``error_context`` extra attached to batch failures.

    Records without one get an empty suffix so the shared format still applies.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        context = getattr(record, "error_context", None)
        if context:
            record.context_suffix = " | " + json.dumps(context, default=str, sort_keys=True)
        else:
            record.context_suffix = ""
        return True


def setup_logging(level: Optional[str] = None):
    """Configure sink logging"""

    level_name = (level or settings.LOG_LEVEL).upper()
    log_level = getattr(logging, level_name, logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(ErrorContextFilter())

    logging.basicConfig(
        level=log_level,
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[handler]
    )

    # Statements are logged by the writers; drivers stay at WARNING even at DEBUG
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    logger.info(f"Logging configured at {level_name} level")
