# src/tracker/__init__.py
# Public entry point: the Tracker facade and its options

from core.errors import TrackerError, ConfigurationError, mask
from tracker.tracker import (
    Tracker,
    TrackerOptions,
    MODES,
    POPULATED_MODE,
    MIDDLEWARE_MODE,
)

__all__ = [
    "Tracker",
    "TrackerOptions",
    "TrackerError",
    "ConfigurationError",
    "mask",
    "MODES",
    "POPULATED_MODE",
    "MIDDLEWARE_MODE",
]
