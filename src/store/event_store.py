# src/store/event_store.py
# The pending-event table: correlation ID -> event waiting for delivery
#
# Entry lifecycle:
#   PENDING   created by create_event()
#   DELIVERED removed by a successful track()
#   EXPIRED   removed by the sweep at the start of a later create_event()
#   PENDING   again after a failed delivery; only a later track() or the
#             sweep clears it, nothing retries on its own
#
# There is no sweeper thread: an idle store keeps its expired entries until
# the next create_event() call.

import json
import threading
import time
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from logger import get_logger
from events import EventBuilder, EventRecord, FieldSet
from metrics import (
    EVENTS_CREATED_TOTAL,
    EVENTS_EXPIRED_TOTAL,
    EVENTS_DELIVERED_TOTAL,
    CORRELATION_MISSES_TOTAL,
    PENDING_EVENTS,
)
from tracking.correlation import generate_correlation_id

logger = get_logger(__name__)

DEFAULT_EVENT_TIMEOUT = 30


@dataclass
class StoredEvent:
    """One row of the pending table."""

    event: EventBuilder
    created_at: int
    # set while a track() call is talking to the sensor
    in_flight: bool = False


class EventStore:
    """
    Correlation-ID indexed table of pending events with lazy TTL eviction.

    All reads and writes of the table happen under one lock. track() holds it
    only to claim and to settle an entry, never during the network call.

    Example:
        store = EventStore(FieldSet.resolve(), timeout=30)
        event = store.create_event()
        event.set_ip_address("1.1.1.1")
        store.track(event, client.send)
    """

    def __init__(
        self,
        field_set: Optional[FieldSet] = None,
        timeout: int = DEFAULT_EVENT_TIMEOUT,
        clock: Callable[[], float] = time.time,
        id_factory: Callable[[], str] = generate_correlation_id,
        log=None,
    ):
        """
        Args:
            field_set: Active field set given to every new event
            timeout: Seconds after which an undelivered event is evicted
            clock: Returns the current epoch time in seconds
            id_factory: Mints correlation IDs
            log: Logger for store diagnostics
        """
        self.field_set = field_set or FieldSet.resolve()
        self.timeout = timeout
        self._clock = clock
        self._id_factory = id_factory
        self._logger = log or logger
        self._events: Dict[str, StoredEvent] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)

    def __contains__(self, correlation_id) -> bool:
        with self._lock:
            return correlation_id in self._events

    def pending_ids(self) -> List[str]:
        """Correlation IDs currently waiting for delivery."""
        with self._lock:
            return list(self._events)

    def create_event(self) -> EventBuilder:
        """
        Sweep expired entries, then store and return a fresh event.

        Returns:
            The builder handle bound to a new correlation ID
        """
        now = int(self._clock())

        with self._lock:
            self._sweep(now)

            correlation_id = self._id_factory()
            while correlation_id in self._events:
                correlation_id = self._id_factory()

            event = EventBuilder(EventRecord(correlation_id), self.field_set, log=self._logger)
            self._events[correlation_id] = StoredEvent(event=event, created_at=now)

        EVENTS_CREATED_TOTAL.inc()
        PENDING_EVENTS.inc()
        self._logger.debug(f"Created event {correlation_id}")
        return event

    def _sweep(self, now: int):
        # caller holds self._lock
        expired = [
            correlation_id
            for correlation_id, stored in self._events.items()
            if now - stored.created_at >= self.timeout
        ]

        for correlation_id in expired:
            stored = self._events.pop(correlation_id)
            EVENTS_EXPIRED_TOTAL.inc()
            PENDING_EVENTS.dec()
            content = json.dumps(stored.event.serialize(), default=str)
            self._logger.debug(
                f"Event {correlation_id} was outdated, dropping event with content {content}"
            )

    def get_event(self, correlation_id: str) -> Optional[EventBuilder]:
        """
        Look up a pending event. Does not sweep or change anything.

        Returns:
            The stored handle, or None if unknown, delivered or expired
        """
        with self._lock:
            stored = self._events.get(correlation_id)
        return stored.event if stored else None

    def track(self, handle: Any, deliver: Callable[[Mapping[str, Any]], bool]) -> bool:
        """
        Deliver a pending event and remove it on success.

        Unknown handles (from another store, already delivered, expired, or
        being delivered right now) are logged as misuse and ignored.

        Args:
            handle: Builder returned by create_event(), or its correlation ID
            deliver: Sends the serialized event, returns True on success

        Returns:
            True if the event was delivered and removed
        """
        correlation_id = getattr(handle, "correlation_id", handle)

        with self._lock:
            stored = self._events.get(correlation_id)
            if stored is None or stored.in_flight:
                CORRELATION_MISSES_TOTAL.inc()
                self._logger.warning(
                    f"Tracker misses event with correlation ID {correlation_id}; "
                    f"create events with create_event() and do not reuse them"
                )
                return False

            stored.in_flight = True
            payload = stored.event.serialize()

        if not stored.event.is_valid():
            self._logger.debug(f"Event {correlation_id} does not fill exactly the active field set")

        delivered = False
        removed = False
        try:
            delivered = deliver(payload)
        finally:
            with self._lock:
                # the sweep may have dropped the entry meanwhile; never put it back
                if self._events.get(correlation_id) is stored:
                    if delivered:
                        del self._events[correlation_id]
                        removed = True
                    else:
                        stored.in_flight = False

        if delivered:
            EVENTS_DELIVERED_TOTAL.inc()
            if removed:
                PENDING_EVENTS.dec()
            self._logger.debug(f"Event {correlation_id} delivered")
        else:
            self._logger.info(f"Event {correlation_id} was not delivered, keeping it pending")

        return delivered
