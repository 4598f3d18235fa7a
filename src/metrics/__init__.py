# src/metrics/__init__.py
# Exports the tracker metrics

from .metrics import (
    EVENTS_CREATED_TOTAL,
    EVENTS_EXPIRED_TOTAL,
    EVENTS_DELIVERED_TOTAL,
    DELIVERY_FAILURES_TOTAL,
    CORRELATION_MISSES_TOTAL,
    PENDING_EVENTS,
    DELIVERY_LATENCY_SECONDS,
)

__all__ = [
    "EVENTS_CREATED_TOTAL",
    "EVENTS_EXPIRED_TOTAL",
    "EVENTS_DELIVERED_TOTAL",
    "DELIVERY_FAILURES_TOTAL",
    "CORRELATION_MISSES_TOTAL",
    "PENDING_EVENTS",
    "DELIVERY_LATENCY_SECONDS",
]
