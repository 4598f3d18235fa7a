# src/main.py
# Entry point for the demo application
# Builds the tracker from the environment, serves the Flask demo app and
# flushes pending deliveries on shutdown.
#
# Usage:
#   SENSOR_URL=https://sensor.example.com SENSOR_API_KEY=... python src/main.py

from logger import get_logger
from config import settings
from api import create_app

logger = get_logger(__name__)


def main():
    """
    Start the demo server.

    The Flask development server is for local use only; in production run
    the app factory under a WSGI server such as gunicorn.
    """
    logger.info("=" * 60)
    logger.info("Starting sensor tracker demo application")
    logger.info(f"Environment: {settings.app.environment}")
    logger.info(f"Debug mode: {settings.app.debug}")
    logger.info("=" * 60)

    app = create_app()
    tracker = app.extensions["tracker"]

    try:
        logger.info(f"Starting API server on {settings.app.api_host}:{settings.app.api_port}")
        app.run(
            host=settings.app.api_host,
            port=settings.app.api_port,
            debug=settings.app.debug,
        )

    except KeyboardInterrupt:
        logger.info("Received shutdown signal (Ctrl+C)")

    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        raise

    finally:
        # waits for deliveries already handed to the worker threads
        tracker.close()
        logger.info(f"Application shutdown complete, {len(tracker.store)} events left undelivered")


if __name__ == "__main__":
    main()
