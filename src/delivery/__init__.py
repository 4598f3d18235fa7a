# src/delivery/__init__.py
# Outbound delivery of events to the sensor

from delivery.client import (
    DeliveryClient,
    normalize_endpoint,
    encode_form,
    SUCCESS_STATUS,
)

__all__ = [
    "DeliveryClient",
    "normalize_endpoint",
    "encode_form",
    "SUCCESS_STATUS",
]
