# src/api/app.py
# Demo Flask application showing how a host app wires in the event tracker
# Each request produces one tracking event; views enrich it through
# g.tracker_event before the response goes out.

from flask import Flask, g, jsonify, request, session

from logger import get_logger
from config import settings
from monitoring import setup_metrics_endpoint
from tracker import Tracker, MIDDLEWARE_MODE
from tracking.middleware import setup_event_tracking

logger = get_logger(__name__)

# Reads the signed-in user's details from the session into the event
DEFAULT_MAPPER = {
    "from": "session.user",
    "fields": {
        "userName": "username",
        "emailAddress": "email",
    },
}

# Application fields the demo views fill in
DEMO_FIELDS = ["eventType", "pageTitle", "emailAddress", "fieldHistory"]


def create_app(tracker=None, mapper=DEFAULT_MAPPER):
    """
    Create and configure the demo Flask application.

    Args:
        tracker: Tracker to use; built from config.settings when None
        mapper: Session-to-event field mapping passed to the middleware

    Returns:
        Configured Flask application instance

    Raises:
        ConfigurationError: If no tracker is given and SENSOR_URL /
            SENSOR_API_KEY are not set
    """
    app = Flask(__name__)
    app.config['DEBUG'] = settings.app.debug
    app.config['SECRET_KEY'] = "demo-secret-key"

    if tracker is None:
        tracker = Tracker.from_settings(
            mode=MIDDLEWARE_MODE,
            fields=list(settings.sensor.fields or []) + DEMO_FIELDS,
        )
    app.extensions["tracker"] = tracker

    register_routes(app)
    setup_metrics_endpoint(app)
    setup_event_tracking(app, tracker, mapper=mapper)

    logger.info(f"Flask application created: debug={settings.app.debug}")
    logger.info(f"Tracking events to {tracker.configurations['url']}")

    return app


def register_routes(app: Flask):
    """
    Register the demo routes.

    Args:
        app: Flask application instance
    """

    @app.route('/health', methods=['GET'])
    def health():
        return jsonify({"status": "healthy", "service": "sensor-tracker"}), 200

    @app.route('/', methods=['GET'])
    def index():
        g.tracker_event.set_event_type_page_view().set_page_title("Home")
        return jsonify({"page": "home", "user": session.get("user")})

    @app.route('/login', methods=['POST'])
    def login():
        payload = request.get_json(silent=True) or {}
        username = payload.get("username")
        if not username:
            g.tracker_event.set_event_type_account_login_fail()
            return jsonify({"error": "username is required"}), 400

        session["user"] = {"username": username, "email": payload.get("email")}
        g.tracker_event.set_event_type_account_login()
        return jsonify({"status": "logged_in", "user": session["user"]})

    @app.route('/logout', methods=['POST'])
    def logout():
        g.tracker_event.set_event_type_account_logout()
        session.pop("user", None)
        return jsonify({"status": "logged_out"})

    @app.route('/profile', methods=['POST'])
    def edit_profile():
        user = session.get("user")
        if not user:
            return jsonify({"error": "not logged in"}), 401

        payload = request.get_json(silent=True) or {}
        event = g.tracker_event.set_event_type_account_edit()
        for field, new_value in payload.items():
            old_value = user.get(field)
            if old_value != new_value:
                event.add_field_history_entry(field, new_value, old_value=old_value)
                user[field] = new_value
        session["user"] = user
        return jsonify({"status": "updated", "user": user})

    @app.errorhandler(404)
    def not_found(error):
        event = g.get("tracker_event")
        if event is not None:
            event.set_event_type_page_error()
        return jsonify({"error": "not found"}), 404
