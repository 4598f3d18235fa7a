# src/tracking/middleware.py
# Flask adapter for the event tracker
# Every request gets its own pending event, filled from the request and
# exposed to views as g.tracker_event. The event is handed to a worker thread
# once the response is finalized, so delivery never delays the response.

from flask import g, request, session

from logger import get_logger
from tracking.correlation import set_correlation_id, clear_correlation_id
from tracking.mapper import populate_mapped_fields

logger = get_logger(__name__)

# Name of the request-scoped attribute holding the event
EVENT_ATTR = "tracker_event"
_DEFAULTS_ATTR = "tracker_event_defaults"


def _apply_mapped_fields(event, mapped, defaults):
    # a field the view changed since before_request wins over the mapper
    for field, value in mapped.items():
        if value is None:
            continue
        if event.get(field) != defaults.get(field):
            continue
        event.set_field(field, value)


def setup_event_tracking(app, tracker, mapper=None):
    """
    Set up event tracking middleware for Flask.

    before_request: creates the event and fills ipAddress, userAgent, url,
        browserLanguage, httpMethod and httpReferer (when in the active set)
    after_request: records httpCode and applies the optional mapper
    teardown_request: schedules delivery with tracker.dispatch()

    Args:
        app: Flask application instance
        tracker: Tracker that owns the events
        mapper: Optional {"from": ..., "fields": {...}} description of
            application fields to read from the request context

    Example:
        setup_event_tracking(app, tracker, mapper={
            "from": "session.user",
            "fields": {"userName": "username", "emailAddress": "email"},
        })

        @app.route("/login", methods=["POST"])
        def login():
            g.tracker_event.set_event_type_account_login()
    """
    populate = populate_mapped_fields(mapper) if mapper else None

    @app.before_request
    def start_tracking_event():
        event = tracker.create_event()

        event \
            .set_ip_address(request.remote_addr or "") \
            .set_user_agent(request.headers.get("User-Agent", "")) \
            .set_url(request.path) \
            .set_browser_language(request.headers.get("Accept-Language", "")) \
            .set_http_method(request.method) \
            .set_http_referer(request.headers.get("Referer", ""))

        setattr(g, EVENT_ATTR, event)
        setattr(g, _DEFAULTS_ATTR, dict(event.record.values))
        set_correlation_id(event.correlation_id)

    @app.after_request
    def finish_tracking_event(response):
        event = g.get(EVENT_ATTR)
        if event is None:
            return response

        event.set_http_code(response.status_code)

        if populate is not None:
            # the mapper walks plain objects, not werkzeug proxies
            context = {
                "session": session._get_current_object(),
                "g": g._get_current_object(),
                "request": request._get_current_object(),
            }
            _apply_mapped_fields(event, populate(context), g.get(_DEFAULTS_ATTR, {}))

        return response

    @app.teardown_request
    def send_tracking_event(exc):
        event = g.pop(EVENT_ATTR, None)
        g.pop(_DEFAULTS_ATTR, None)

        try:
            if event is None:
                return
            if exc is not None and event.get("httpCode") is None:
                event.set_http_code(500)
            tracker.dispatch(event)
        finally:
            clear_correlation_id()

    logger.info("Event tracking middleware enabled")
