"""
Tests for the Flask tracking adapter and the demo application built on it.

Requests are driven through Flask's test client; tracker.close() waits for
the background deliveries so the fake session can be inspected afterwards.
"""

import pytest
from flask import Flask, g, jsonify

from api import create_app
from api.app import DEMO_FIELDS
from tracker import MIDDLEWARE_MODE, Tracker
from tracking import get_correlation_id
from tracking.middleware import setup_event_tracking

CLIENT_ENV = {"REMOTE_ADDR": "10.0.0.7"}


def make_tracker(session, fields=None):
    return Tracker(
        "https://sensor.example.test",
        "secret-key",
        {"mode": MIDDLEWARE_MODE, "fields": fields, "delivery_workers": 1},
        session=session,
    )


def forms_by_url(session):
    return {dict(call["data"])["url"]: dict(call["data"]) for call in session.calls}


@pytest.fixture
def demo(fake_session):
    tracker = make_tracker(fake_session, fields=DEMO_FIELDS)
    app = create_app(tracker=tracker)
    app.config["TESTING"] = True
    return app, tracker


class TestRequestFields:
    """Fields filled from the incoming request."""

    def test_request_fields_are_populated(self, demo, fake_session):
        app, tracker = demo
        client = app.test_client()

        response = client.get(
            "/",
            environ_base=CLIENT_ENV,
            headers={"User-Agent": "TestAgent/1.0", "Accept-Language": "en-US", "Referer": "https://ref.test/"},
        )
        tracker.close()

        assert response.status_code == 200
        form = fake_session.last_form
        assert form["ipAddress"] == "10.0.0.7"
        assert form["userName"] == "10.0.0.7"
        assert form["url"] == "/"
        assert form["userAgent"] == "TestAgent/1.0"
        assert form["browserLanguage"] == "en-US"
        assert form["httpMethod"] == "GET"
        assert form["httpReferer"] == "https://ref.test/"
        assert form["httpCode"] == "200"
        assert form["eventType"] == "page_view"
        assert form["pageTitle"] == "Home"

    def test_one_delivery_per_request(self, demo, fake_session):
        app, tracker = demo
        client = app.test_client()

        for _ in range(3):
            client.get("/health", environ_base=CLIENT_ENV)
        tracker.close()

        assert len(fake_session.calls) == 3
        assert len(tracker.store) == 0

    def test_not_found_is_tracked_as_page_error(self, demo, fake_session):
        app, tracker = demo

        response = app.test_client().get("/missing", environ_base=CLIENT_ENV)
        tracker.close()

        assert response.status_code == 404
        form = fake_session.last_form
        assert form["eventType"] == "page_error"
        assert form["httpCode"] == "404"


class TestMappedFields:
    """Values read from the session through the mapper."""

    def test_login_maps_session_user(self, demo, fake_session):
        app, tracker = demo
        client = app.test_client()

        response = client.post(
            "/login",
            json={"username": "alice", "email": "alice@example.com"},
            environ_base=CLIENT_ENV,
        )
        tracker.close()

        assert response.status_code == 200
        form = fake_session.last_form
        assert form["eventType"] == "account_login"
        assert form["userName"] == "alice"
        assert form["emailAddress"] == "alice@example.com"
        assert form["ipAddress"] == "10.0.0.7"

    def test_failed_login(self, demo, fake_session):
        app, tracker = demo

        response = app.test_client().post("/login", json={}, environ_base=CLIENT_ENV)
        tracker.close()

        assert response.status_code == 400
        form = fake_session.last_form
        assert form["eventType"] == "account_login_fail"
        assert form["userName"] == "10.0.0.7"
        assert "emailAddress" not in form

    def test_profile_edit_records_field_history(self, demo, fake_session):
        app, tracker = demo
        client = app.test_client()

        client.post("/login", json={"username": "alice", "email": "a@example.com"}, environ_base=CLIENT_ENV)
        client.post("/profile", json={"email": "b@example.com"}, environ_base=CLIENT_ENV)
        tracker.close()

        form = forms_by_url(fake_session)["/profile"]
        assert form["eventType"] == "account_edit"
        assert form["emailAddress"] == "b@example.com"
        assert form["fieldHistory[0][field_id]"] == "email"
        assert form["fieldHistory[0][new_value]"] == "b@example.com"
        assert form["fieldHistory[0][old_value]"] == "a@example.com"

    def test_explicit_value_wins_over_mapper(self, fake_session):
        tracker = make_tracker(fake_session, fields=["emailAddress"])
        app = Flask(__name__)
        app.config["SECRET_KEY"] = "test"
        setup_event_tracking(app, tracker, mapper={
            "from": "g.account",
            "fields": {"userName": "name", "emailAddress": "email"},
        })

        @app.route("/explicit")
        def explicit():
            g.account = {"name": "mapped-user", "email": "mapped@example.com"}
            g.tracker_event.set_user_name("explicit-user")
            return "ok"

        app.test_client().get("/explicit", environ_base=CLIENT_ENV)
        tracker.close()

        form = fake_session.last_form
        assert form["userName"] == "explicit-user"
        assert form["emailAddress"] == "mapped@example.com"


class TestAdapterLifecycle:
    def test_unhandled_error_is_tracked_as_500(self, fake_session):
        tracker = make_tracker(fake_session)
        app = Flask(__name__)
        app.config["PROPAGATE_EXCEPTIONS"] = False
        setup_event_tracking(app, tracker)

        @app.route("/boom")
        def boom():
            raise RuntimeError("boom")

        response = app.test_client().get("/boom", environ_base=CLIENT_ENV)
        tracker.close()

        assert response.status_code == 500
        assert fake_session.last_form["httpCode"] == "500"

    def test_correlation_id_bound_during_request_only(self, fake_session):
        tracker = make_tracker(fake_session)
        app = Flask(__name__)
        setup_event_tracking(app, tracker)

        @app.route("/cid")
        def cid():
            return jsonify({
                "bound": get_correlation_id(),
                "event": g.tracker_event.correlation_id,
            })

        body = app.test_client().get("/cid", environ_base=CLIENT_ENV).get_json()
        tracker.close()

        assert body["bound"] == body["event"]
        assert get_correlation_id() is None

    def test_failed_delivery_does_not_affect_response(self, make_session):
        session = make_session(status_code=503)
        tracker = make_tracker(session)
        app = Flask(__name__)
        setup_event_tracking(app, tracker)

        @app.route("/ok")
        def ok():
            return "ok"

        response = app.test_client().get("/ok", environ_base=CLIENT_ENV)
        tracker.close()

        assert response.status_code == 200
        assert len(session.calls) == 1
        assert len(tracker.store) == 1


class TestDemoEndpoints:
    def test_health(self, demo):
        app, tracker = demo
        response = app.test_client().get("/health")
        tracker.close()
        assert response.get_json() == {"status": "healthy", "service": "sensor-tracker"}

    def test_metrics_endpoint_exposes_tracker_metrics(self, demo):
        app, tracker = demo
        client = app.test_client()

        client.get("/health")
        response = client.get("/metrics")
        tracker.close()

        assert response.status_code == 200
        assert b"tracker_events_created_total" in response.data
        assert b"tracker_delivery_latency_seconds" in response.data
