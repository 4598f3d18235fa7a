# src/events/__init__.py
# Event records, the field catalogue and the validating builder

from events.fields import (
    REQUIRED_FIELDS,
    POPULATED_FIELDS,
    MAPPED_FIELDS,
    ALL_FIELDS,
    EventType,
    FieldSet,
)
from events.record import EventRecord, EventBuilder, utc_timestamp

__all__ = [
    "REQUIRED_FIELDS",
    "POPULATED_FIELDS",
    "MAPPED_FIELDS",
    "ALL_FIELDS",
    "EventType",
    "FieldSet",
    "EventRecord",
    "EventBuilder",
    "utc_timestamp",
]
