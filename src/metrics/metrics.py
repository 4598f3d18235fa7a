# src/metrics/metrics.py
# Prometheus metrics for the event tracker
# Counters only go up, the gauge follows the pending table size, and the
# histogram records how long each POST to the sensor took.

from prometheus_client import Counter, Gauge, Histogram

# Events minted by EventStore.create_event()
EVENTS_CREATED_TOTAL = Counter(
    "tracker_events_created_total",
    "Total number of tracking events created",
)

# Events dropped by the TTL sweep before they were delivered
EVENTS_EXPIRED_TOTAL = Counter(
    "tracker_events_expired_total",
    "Total number of pending events evicted after the timeout",
)

# Events accepted by the sensor (HTTP 204) and removed from the store
EVENTS_DELIVERED_TOTAL = Counter(
    "tracker_events_delivered_total",
    "Total number of events delivered to the sensor",
)

# Failed delivery attempts; the event stays pending
DELIVERY_FAILURES_TOTAL = Counter(
    "tracker_delivery_failures_total",
    "Total number of failed deliveries to the sensor",
    ["reason"]  # Label: status, transport
)

# track() called with a handle the store does not know
CORRELATION_MISSES_TOTAL = Counter(
    "tracker_correlation_misses_total",
    "Total number of track calls for unknown or already delivered events",
)

PENDING_EVENTS = Gauge(
    "tracker_pending_events",
    "Number of events waiting in the pending table",
)

DELIVERY_LATENCY_SECONDS = Histogram(
    "tracker_delivery_latency_seconds",
    "Latency of POST requests to the sensor",
)
