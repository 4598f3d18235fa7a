# src/tracker/tracker.py
# The Tracker facade wires the pending-event store, the field rules and the
# HTTP delivery client together behind create_event / get_event / track.
#
# Only construction can raise (ConfigurationError). Everything after that is
# absorbed and logged so tracking never changes the host application's flow.

import threading
import time
from collections.abc import Mapping
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, fields as dataclass_fields, replace
from typing import Any, Callable, Dict, List, Optional, Union

from logger import get_logger
from core.errors import ConfigurationError, mask
from delivery import DeliveryClient
from events import EventBuilder, FieldSet
from store import EventStore, DEFAULT_EVENT_TIMEOUT
from tracking.correlation import correlation_context

logger = get_logger(__name__)

POPULATED_MODE = "populated"
MIDDLEWARE_MODE = "middleware"
MODES = (POPULATED_MODE, MIDDLEWARE_MODE)


@dataclass
class TrackerOptions:
    """
    Tuning knobs for a Tracker.

    Every field has a default, so Tracker(url, key) works out of the box.
    """
    # Seconds an undelivered event stays retrievable
    event_timeout: int = DEFAULT_EVENT_TIMEOUT

    # Allow the request-derived fields on top of the required ones
    populated: bool = True

    # Extra field names to allow (e.g. ["emailAddress", "eventType"])
    fields: Optional[List[str]] = None

    # "populated" for direct use, "middleware" when a request adapter drives it
    mode: str = POPULATED_MODE

    # Seconds to wait for the sensor on each POST
    request_timeout: float = 10.0

    # Threads used by dispatch()
    delivery_workers: int = 2

    @classmethod
    def coerce(cls, value: Union["TrackerOptions", Mapping[str, Any], None]) -> "TrackerOptions":
        """
        Accept an options object, a plain mapping, or None.

        Raises:
            ConfigurationError: If the options are not a mapping or hold bad values
        """
        if value is None:
            options = cls()
        elif isinstance(value, cls):
            options = value
        elif isinstance(value, Mapping):
            known = {f.name for f in dataclass_fields(cls)}
            unknown = set(value) - known
            if unknown:
                logger.warning(f"Ignoring unknown tracker options: {sorted(unknown)}")
            options = cls(**{key: value[key] for key in value if key in known})
        else:
            raise ConfigurationError(f"options must be a mapping, got {type(value).__name__}")

        options.validate()
        return options

    def validate(self):
        """
        Check option types and ranges.

        Raises:
            ConfigurationError: On the first invalid option
        """
        if not _is_int(self.event_timeout) or self.event_timeout <= 0:
            raise ConfigurationError(f"event_timeout must be a positive int, got {self.event_timeout!r}")
        if not (_is_int(self.request_timeout) or isinstance(self.request_timeout, float)) \
                or self.request_timeout <= 0:
            raise ConfigurationError(f"request_timeout must be a positive number, got {self.request_timeout!r}")
        if not _is_int(self.delivery_workers) or self.delivery_workers < 1:
            raise ConfigurationError(f"delivery_workers must be an int >= 1, got {self.delivery_workers!r}")
        if not isinstance(self.populated, bool):
            raise ConfigurationError(f"populated must be a bool, got {self.populated!r}")
        if self.fields is not None and (isinstance(self.fields, str) or not isinstance(self.fields, (list, tuple))):
            raise ConfigurationError(f"fields must be a list of field names, got {self.fields!r}")


def _is_int(value) -> bool:
    # bool is an int subclass but never a valid count
    return isinstance(value, int) and not isinstance(value, bool)


class Tracker:
    """
    Entry point for sending events to the sensor.

    Example:
        tracker = Tracker("https://sensor.example.com", "API_KEY",
                          {"fields": ["eventType"]})
        event = tracker.create_event()
        event.set_ip_address("1.1.1.1").set_url("/login").set_event_type_account_login()
        tracker.track(event)        # blocking
        tracker.dispatch(event)     # or on a worker thread
    """

    modes = MODES

    def __init__(
        self,
        endpoint_url: str,
        api_key: str,
        options: Union[TrackerOptions, Mapping[str, Any], None] = None,
        log=None,
        session=None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            endpoint_url: Base sensor URL; "/sensor/" is appended when missing
            api_key: Sent as the Api-Key header
            options: TrackerOptions or a dict with the same keys
            log: Logger for all tracker diagnostics (defaults to this module's)
            session: requests.Session used for delivery
            clock: Epoch-seconds clock used for event expiry

        Raises:
            ConfigurationError: If the URL or key is missing or malformed
        """
        if not isinstance(endpoint_url, str) or not endpoint_url or not isinstance(api_key, str) or not api_key:
            raise ConfigurationError(f"{mask('url', endpoint_url)}, {mask('key', api_key, True)}")

        try:
            self.options = TrackerOptions.coerce(options)
            self._logger = log or logger
            self.mode = self.options.mode if self.options.mode in MODES else POPULATED_MODE

            self._client = DeliveryClient(
                endpoint_url,
                api_key,
                timeout=self.options.request_timeout,
                session=session,
                log=self._logger,
            )
            self._store = EventStore(
                FieldSet.resolve(self.options.populated, self.options.fields),
                timeout=self.options.event_timeout,
                clock=clock,
                log=self._logger,
            )
        except ConfigurationError:
            raise
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"unexpected configuration error: {e}") from e

        self._executor: Optional[ThreadPoolExecutor] = None
        self._executor_lock = threading.Lock()
        self._closed = False

    @classmethod
    def from_settings(cls, settings=None, **overrides) -> "Tracker":
        """
        Build a tracker from the environment-driven configuration.

        Args:
            settings: A config.Settings; defaults to config.settings
            **overrides: TrackerOptions fields that replace the configured ones

        Example:
            Tracker.from_settings(mode=MIDDLEWARE_MODE)
        """
        if settings is None:
            from config import settings

        sensor = settings.sensor
        options = TrackerOptions(
            event_timeout=sensor.event_timeout,
            populated=sensor.populated,
            fields=sensor.fields,
            request_timeout=sensor.request_timeout,
            delivery_workers=sensor.delivery_workers,
        )
        if overrides:
            options = replace(options, **overrides)
        return cls(sensor.url, sensor.api_key, options)

    @property
    def endpoint(self) -> str:
        return self._client.endpoint

    @property
    def store(self) -> EventStore:
        return self._store

    @property
    def configurations(self) -> Dict[str, Any]:
        """Read-only view of the effective configuration, API key hidden."""
        return {
            "url": self._client.endpoint,
            "key": "******",
            "mode": self.mode,
            "fields": self._store.field_set.ordered(),
            "event_timeout": self._store.timeout,
        }

    def create_event(self) -> EventBuilder:
        """Create a pending event (sweeping expired ones first) and return its handle."""
        return self._store.create_event()

    def get_event(self, correlation_id: str) -> Optional[EventBuilder]:
        """Return the pending event with this correlation ID, or None."""
        return self._store.get_event(correlation_id)

    def track(self, event: EventBuilder) -> bool:
        """
        Send a pending event now and forget it on success.

        A second call for the same event, or a call with an event this
        tracker did not create, does nothing.

        Returns:
            True if the sensor accepted the event
        """
        try:
            return self._store.track(event, self._client.send)
        except Exception as e:
            self._logger.error(f"Unexpected error tracking event: {e}", exc_info=True)
            return False

    def _track_in_context(self, event: EventBuilder) -> bool:
        with correlation_context(getattr(event, "correlation_id", None)):
            return self.track(event)

    def _get_executor(self) -> Optional[ThreadPoolExecutor]:
        # None once close() has started; a closed tracker never builds a new pool
        with self._executor_lock:
            if self._closed:
                return None
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self.options.delivery_workers,
                    thread_name_prefix="tracker-delivery",
                )
            return self._executor

    def dispatch(self, event: EventBuilder) -> Optional[Future]:
        """
        Schedule track(event) on a worker thread and return immediately.

        The outcome is only visible through logs and metrics.

        Returns:
            The Future of the delivery, or None if the tracker is closed
        """
        try:
            executor = self._get_executor()
            if executor is None:
                self._logger.warning("Tracker is closed, dropping dispatch request")
                return None
            return executor.submit(self._track_in_context, event)
        except Exception as e:
            self._logger.warning(f"Could not schedule delivery: {e}", exc_info=True)
            return None

    def close(self):
        """Wait for scheduled deliveries, then release the HTTP session."""
        with self._executor_lock:
            self._closed = True
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=True)
        self._client.close()
        self._logger.debug("Tracker closed")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
