# src/store/__init__.py
# The correlation-ID indexed table of pending events

from store.event_store import EventStore, StoredEvent, DEFAULT_EVENT_TIMEOUT

__all__ = [
    "EventStore",
    "StoredEvent",
    "DEFAULT_EVENT_TIMEOUT",
]
