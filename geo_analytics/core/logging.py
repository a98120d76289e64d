"""
Logging Configuration

All modules log through standard Python logging under the "geo_analytics"
logger hierarchy (logging.getLogger(__name__)). This module only installs a
handler for applications that do not configure logging themselves.

Future Enhancements:
- Structured logging (JSON format) for better parsing
"""

import logging
from typing import Union

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

logger = logging.getLogger("geo_analytics")


def configure_logging(level: Union[int, str] = logging.INFO) -> logging.Logger:
    """
    Attach a stream handler to the package logger.

    Calling this more than once only updates the level.

    Args:
        level: Log level name or number

    Returns:
        The "geo_analytics" logger
    """
    if isinstance(level, str):
        level = level.upper()
    logger.setLevel(level)

    if not any(getattr(h, "_geo_analytics", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._geo_analytics = True
        logger.addHandler(handler)

    return logger
