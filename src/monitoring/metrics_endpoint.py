# src/monitoring/metrics_endpoint.py
# Exposes the tracker's Prometheus metrics for scraping

from flask import Response
from prometheus_client import REGISTRY, CONTENT_TYPE_LATEST, generate_latest

from logger import get_logger

logger = get_logger(__name__)


def setup_metrics_endpoint(app, path: str = "/metrics", registry=REGISTRY):
    """
    Register a scrape endpoint on a Flask app.

    Args:
        app: Flask application instance
        path: URL rule for the endpoint
        registry: Collector registry to expose (the process default)

    Example output:
        # HELP tracker_pending_events Events waiting for delivery
        # TYPE tracker_pending_events gauge
        tracker_pending_events 3.0
    """
    def tracker_metrics():
        try:
            body = generate_latest(registry)
        except Exception as e:
            logger.error(f"Error generating metrics: {e}", exc_info=True)
            return Response(f"Error generating metrics: {e}", status=500, mimetype="text/plain")
        return Response(body, mimetype=CONTENT_TYPE_LATEST)

    app.add_url_rule(path, "tracker_metrics", tracker_metrics, methods=["GET"])
    logger.info(f"Prometheus metrics endpoint registered at {path}")
