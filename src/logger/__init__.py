# src/logger/__init__.py
# Exports the logging helpers used by every other package
# Named 'logger' instead of 'logging' to avoid clashing with Python's built-in module

from .logging import setup_logging, get_logger, CorrelationIDFilter

__all__ = [
    "setup_logging",
    "get_logger",
    "CorrelationIDFilter",
]
