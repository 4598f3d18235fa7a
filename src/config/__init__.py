# src/config/__init__.py
# Exports the settings object that other modules import

from .settings import settings, Settings, SensorConfig, AppConfig

__all__ = [
    "settings",
    "Settings",
    "SensorConfig",
    "AppConfig",
]
