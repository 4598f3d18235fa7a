#!/usr/bin/env python3
"""
Send a single tracking event to a sensor from the command line.

Useful for checking that a sensor URL and API key work before wiring the
tracker into an application.

Usage:
    python scripts/send_event.py --url https://sensor.example.com --key API_KEY

    # Custom event:
    python scripts/send_event.py --url https://sensor.example.com --key API_KEY \\
        --user alice --ip 1.1.1.1 --page /login --event-type account_login
"""

import sys
import os
import argparse

# Add src directory to path so we can import our modules
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from logger import get_logger
from config import settings
from events import EventType, MAPPED_FIELDS
from tracker import Tracker, ConfigurationError

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Send one tracking event to the sensor",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Page view from localhost using SENSOR_URL / SENSOR_API_KEY
  python scripts/send_event.py

  # Failed login for a named user
  python scripts/send_event.py --user alice --event-type account_login_fail
        """
    )

    parser.add_argument(
        "--url",
        type=str,
        default=settings.sensor.url,
        help="Base sensor URL (default: SENSOR_URL)"
    )

    parser.add_argument(
        "--key",
        type=str,
        default=settings.sensor.api_key,
        help="API key (default: SENSOR_API_KEY)"
    )

    parser.add_argument("--user", type=str, default=None, help="userName (defaults to the IP address)")
    parser.add_argument("--ip", type=str, default="127.0.0.1", help="ipAddress (default: 127.0.0.1)")
    parser.add_argument("--page", type=str, default="/", help="url of the visited page (default: /)")
    parser.add_argument("--email", type=str, default=None, help="emailAddress")

    parser.add_argument(
        "--event-type",
        type=str,
        choices=sorted(EventType.get_allowed_types()),
        default=EventType.PAGE_VIEW.value,
        help="eventType (default: page_view)"
    )

    return parser


def main():
    """Build one event from the arguments and send it synchronously."""
    args = build_parser().parse_args()

    try:
        tracker = Tracker(args.url, args.key, {"fields": list(MAPPED_FIELDS)})
    except ConfigurationError as e:
        logger.error(str(e))
        sys.exit(2)

    with tracker:
        logger.info(f"Sending event to {tracker.configurations['url']}")

        event = tracker.create_event()
        event \
            .set_ip_address(args.ip) \
            .set_url(args.page) \
            .set_http_method("GET") \
            .set_user_agent("sensor-tracker-cli") \
            .set_event_type(args.event_type)
        if args.user:
            event.set_user_name(args.user)
        if args.email:
            event.set_email_address(args.email)

        if tracker.track(event):
            logger.info("Event delivered")
        else:
            logger.error("Event was not delivered, see the log above")
            sys.exit(1)


if __name__ == "__main__":
    main()
