# src/config/settings.py
# Centralized configuration for the tracker and the demo application
# Every value comes from an environment variable with a sensible default,
# so dev/staging/prod differ only in their environment.

import os
from dataclasses import dataclass, field
from typing import List, Optional


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


def _env_list(name: str) -> Optional[List[str]]:
    # "emailAddress, eventType" -> ["emailAddress", "eventType"]
    raw = os.getenv(name, "")
    values = [item.strip() for item in raw.split(",") if item.strip()]
    return values or None


@dataclass
class SensorConfig:
    """
    Sensor (remote collection endpoint) settings.

    url and api_key have no defaults: the tracker refuses to start without them.
    """
    # Base URL of the sensor; "/sensor/" is appended when missing
    url: str = field(default_factory=lambda: os.getenv("SENSOR_URL", ""))

    # Sent as the Api-Key header on every delivery
    api_key: str = field(default_factory=lambda: os.getenv("SENSOR_API_KEY", ""))

    # Seconds an undelivered event stays in the pending table
    event_timeout: int = field(default_factory=lambda: int(os.getenv("SENSOR_EVENT_TIMEOUT", "30")))

    # Include request-derived fields (userAgent, httpMethod, ...) in the active field set
    populated: bool = field(default_factory=lambda: _env_bool("SENSOR_POPULATED", "true"))

    # Extra field names added to the active field set
    fields: Optional[List[str]] = field(default_factory=lambda: _env_list("SENSOR_FIELDS"))

    # Timeout for a single POST to the sensor, in seconds
    request_timeout: float = field(default_factory=lambda: float(os.getenv("SENSOR_REQUEST_TIMEOUT", "10")))

    # Worker threads used for detached deliveries
    delivery_workers: int = field(default_factory=lambda: int(os.getenv("SENSOR_DELIVERY_WORKERS", "2")))


@dataclass
class AppConfig:
    """
    Application-level configuration.

    Settings that affect the process as a whole rather than the sensor.
    """
    # development, staging, production
    environment: str = field(default_factory=lambda: os.getenv("ENVIRONMENT", "development"))

    # DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))

    # Where the demo API listens
    api_host: str = field(default_factory=lambda: os.getenv("API_HOST", "0.0.0.0"))
    api_port: int = field(default_factory=lambda: int(os.getenv("API_PORT", "8000")))

    # Flask debug mode; must stay off in production
    debug: bool = field(default_factory=lambda: _env_bool("DEBUG", "false"))


@dataclass
class Settings:
    """
    All configuration in one object.

    Access it as settings.sensor.url, settings.app.log_level, ...
    """
    sensor: SensorConfig = field(default_factory=SensorConfig)
    app: AppConfig = field(default_factory=AppConfig)

    def validate(self):
        """
        Validate configuration values.

        The sensor URL and key are checked by the Tracker itself when it is
        built, so an importing library does not need them set.

        Raises:
            ValueError: on the first invalid value
        """
        if self.sensor.event_timeout <= 0:
            raise ValueError(f"SENSOR_EVENT_TIMEOUT must be positive, got {self.sensor.event_timeout}")
        if self.sensor.request_timeout <= 0:
            raise ValueError(f"SENSOR_REQUEST_TIMEOUT must be positive, got {self.sensor.request_timeout}")
        if self.sensor.delivery_workers < 1:
            raise ValueError(f"SENSOR_DELIVERY_WORKERS must be at least 1, got {self.sensor.delivery_workers}")

        if not (1 <= self.app.api_port <= 65535):
            raise ValueError(f"API_PORT must be between 1 and 65535, got {self.app.api_port}")

        if self.app.environment not in ["development", "staging", "production"]:
            raise ValueError(f"ENVIRONMENT must be development, staging, or production, got {self.app.environment}")

        if self.app.log_level not in ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
            raise ValueError(f"LOG_LEVEL must be DEBUG, INFO, WARNING, ERROR, or CRITICAL, got {self.app.log_level}")


# One settings object for the whole process
settings = Settings()

# Fail early on a broken environment
try:
    settings.validate()
except ValueError as e:
    raise RuntimeError(f"Invalid configuration: {e}") from e
