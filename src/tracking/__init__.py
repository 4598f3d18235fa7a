# src/tracking/__init__.py
# Correlation IDs for tracking events and the Flask request adapter
# The adapter lives in tracking.middleware and is imported from there, so the
# core does not need Flask installed to mint IDs.

from tracking.correlation import (
    get_correlation_id,
    set_correlation_id,
    clear_correlation_id,
    correlation_context,
    generate_correlation_id,
)
from tracking.mapper import populate_mapped_fields, pick_value, path_to_list

__all__ = [
    "get_correlation_id",
    "set_correlation_id",
    "clear_correlation_id",
    "correlation_context",
    "generate_correlation_id",
    "populate_mapped_fields",
    "pick_value",
    "path_to_list",
]
