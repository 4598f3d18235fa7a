# src/core/__init__.py
# Shared exceptions and helpers

from core.errors import TrackerError, ConfigurationError, mask

__all__ = [
    "TrackerError",
    "ConfigurationError",
    "mask",
]
