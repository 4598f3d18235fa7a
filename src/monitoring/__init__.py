# src/monitoring/__init__.py
# Monitoring endpoints for the demo application

from .metrics_endpoint import setup_metrics_endpoint

__all__ = [
    "setup_metrics_endpoint",
]
