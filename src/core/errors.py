# src/core/errors.py
# Exceptions raised by the tracker
# Only configuration problems are ever raised to the caller; delivery and
# validation problems are logged and absorbed.

from typing import Any, Optional


class TrackerError(Exception):
    """Base class for tracker errors."""

    code: Optional[str] = None


class ConfigurationError(TrackerError):
    """
    Raised when the tracker is built with a missing or malformed URL or key.

    The message never contains the API key itself; use mask() when
    describing the offending values.
    """

    code = "ERR_CONFIG"

    def __init__(self, details: str = ""):
        message = "Tracker URL or API key is missing or invalid"
        if details:
            message = f"{message}: {details}"
        super().__init__(message)
        self.details = details


def mask(name: str, value: Any, sensitive: bool = False) -> str:
    """
    Describe a value for logs, hiding it when it is sensitive.

    Args:
        name: Name of the value
        value: The value to describe
        sensitive: Replace the value with asterisks

    Returns:
        A string such as 'key[str] ******' or '"url" value is None'

    Example:
        mask("key", "secret", True)   # 'key[str] ******'
        mask("port", 8000)            # 'port[int] 8000'
    """
    if value is None:
        return f'"{name}" value is None'
    return f"{name}[{type(value).__name__}] {'******' if sensitive else value}"
