# src/tracking/correlation.py
# Correlation IDs bind one tracking event to its pending delivery.
# This module mints them and keeps the ID of the event being built for the
# current request in a context variable, so log records can carry it.

import random
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

# ContextVar is safe across threads and async code; each request context
# sees its own value
_correlation_id: ContextVar[Optional[str]] = ContextVar('correlation_id', default=None)

_UUID_TEMPLATE = "xxxxxxxx-xxxx-4xxx-yxxx-xxxxxxxxxxxx"


def _pseudo_random_uuid() -> str:
    """
    Build a UUID v4 shaped string from the non-cryptographic PRNG.

    Only used when the platform has no secure random source.
    """
    chars = []
    for c in _UUID_TEMPLATE:
        if c == "x":
            chars.append(format(random.randint(0, 15), "x"))
        elif c == "y":
            # variant bits 10xx
            chars.append(format(random.randint(0, 3) | 0x8, "x"))
        else:
            chars.append(c)
    return "".join(chars)


def generate_correlation_id() -> str:
    """
    Generate a new correlation ID.

    Uses uuid4 (backed by os.urandom). Falls back to a pseudo-random
    UUID-shaped string when no secure random source is available.

    Returns:
        A 36 character UUID string
    """
    try:
        return str(uuid.uuid4())
    except NotImplementedError:
        return _pseudo_random_uuid()


def get_correlation_id() -> Optional[str]:
    """Return the ID of the event bound to this context, or None."""
    return _correlation_id.get()


def set_correlation_id(correlation_id: str) -> None:
    _correlation_id.set(correlation_id)


def clear_correlation_id() -> None:
    _correlation_id.set(None)


@contextmanager
def correlation_context(correlation_id: Optional[str] = None) -> Iterator[str]:
    """
    Bind an event's correlation ID for the duration of a block.

    Whatever was bound before is restored on exit. Background deliveries use
    it so the worker thread logs under the event's ID.

    Args:
        correlation_id: ID to bind; a fresh one is minted when None

    Example:
        with correlation_context(event.correlation_id):
            tracker.track(event)
    """
    cid = correlation_id or generate_correlation_id()
    token = _correlation_id.set(cid)
    try:
        yield cid
    finally:
        _correlation_id.reset(token)
