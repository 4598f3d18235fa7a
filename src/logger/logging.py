# src/logger/logging.py
# Centralized logging configuration for the tracker
# Every module asks for its logger through get_logger() so the format and
# level are decided in one place.
# Note: the folder is called 'logger' so it does not shadow Python's built-in 'logging'

import logging
import sys
from typing import Iterable, Optional

# [correlation id] is the ID of the tracking event the record belongs to
LOG_FORMAT = '%(asctime)s - [%(correlation_id)s] - %(name)s - %(levelname)s - %(message)s'

# requests' connection pool logs every POST to the sensor at DEBUG
NOISY_LOGGERS = ("urllib3",)


class CorrelationIDFilter(logging.Filter):
    """
    Stamps the correlation ID of the event being built or delivered on every record.

    Records emitted outside a request or a delivery get "-".
    """

    def filter(self, record):
        try:
            from tracking.correlation import get_correlation_id
        except ImportError:
            record.correlation_id = "-"
        else:
            record.correlation_id = get_correlation_id() or "-"
        return True


def setup_logging(level: Optional[str] = None, quiet: Iterable[str] = NOISY_LOGGERS):
    """
    Send all records to stdout with the tracker format.

    Args:
        level: DEBUG, INFO, WARNING, ERROR or CRITICAL.
               Defaults to LOG_LEVEL from the settings.
        quiet: Logger names capped at WARNING whatever the level
    """
    try:
        from config import settings
        log_level = level or settings.app.log_level
    except ImportError:
        log_level = level or "INFO"

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.addFilter(CorrelationIDFilter())

    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        handlers=[handler]
    )

    for name in quiet:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return the logger for a module (usually called with __name__)."""
    return logging.getLogger(name)


setup_logging()
