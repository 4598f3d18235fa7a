"""
Tests for the Tracker facade: construction errors, options, tracking and
background dispatch.
"""

import logging

import pytest

from config import Settings, SensorConfig
from tracker import (
    ConfigurationError,
    MIDDLEWARE_MODE,
    POPULATED_MODE,
    Tracker,
    TrackerError,
    TrackerOptions,
    mask,
)

SENSOR_URL = "https://sensor.example.test/api"


def make_tracker(session, options=None, clock=None):
    kwargs = {"session": session}
    if clock is not None:
        kwargs["clock"] = clock
    return Tracker(SENSOR_URL, "secret-key", options, **kwargs)


class TestConstruction:
    """Only bad configuration raises."""

    @pytest.mark.parametrize(
        "url, key",
        [
            ("", "secret-key"),
            (None, "secret-key"),
            (SENSOR_URL, ""),
            (SENSOR_URL, None),
            (123, "secret-key"),
            ("not a url", "secret-key"),
        ],
    )
    def test_bad_url_or_key_raises(self, url, key, make_session):
        with pytest.raises(ConfigurationError):
            Tracker(url, key, session=make_session())

    def test_error_message_masks_key(self, make_session):
        with pytest.raises(ConfigurationError) as exc_info:
            Tracker("", "secret-key", session=make_session())

        message = str(exc_info.value)
        assert "secret-key" not in message
        assert "key[str] ******" in message
        assert exc_info.value.code == "ERR_CONFIG"
        assert isinstance(exc_info.value, TrackerError)

    def test_non_mapping_options_raise(self, make_session):
        with pytest.raises(ConfigurationError):
            Tracker(SENSOR_URL, "secret-key", ["fields"], session=make_session())

    @pytest.mark.parametrize(
        "options",
        [
            {"event_timeout": "30"},
            {"event_timeout": 0},
            {"event_timeout": True},
            {"request_timeout": -1},
            {"request_timeout": "10"},
            {"delivery_workers": 0},
            {"delivery_workers": 1.5},
            {"populated": "yes"},
            {"fields": "emailAddress"},
        ],
    )
    def test_bad_option_values_raise(self, options, make_session):
        with pytest.raises(ConfigurationError):
            Tracker(SENSOR_URL, "secret-key", options, session=make_session())

    def test_mask(self):
        assert mask("url", None) == '"url" value is None'
        assert mask("port", 8000) == "port[int] 8000"
        assert mask("key", "abc", sensitive=True) == "key[str] ******"


class TestOptions:
    def test_defaults(self):
        options = TrackerOptions.coerce(None)
        assert options.event_timeout == 30
        assert options.populated is True
        assert options.mode == POPULATED_MODE

    def test_mapping_is_coerced_and_unknown_keys_ignored(self, caplog):
        with caplog.at_level(logging.WARNING, logger="tracker.tracker"):
            options = TrackerOptions.coerce({"event_timeout": 5, "colour": "blue"})

        assert options.event_timeout == 5
        assert any("colour" in r.getMessage() for r in caplog.records)

    def test_invalid_mode_falls_back_to_populated(self, fake_session):
        tracker = make_tracker(fake_session, options={"mode": "nonsense"})
        assert tracker.mode == POPULATED_MODE

    def test_configurations_hide_key(self, fake_session):
        tracker = make_tracker(fake_session, options={"mode": MIDDLEWARE_MODE, "fields": ["eventType"], "populated": False})
        config = tracker.configurations

        assert config["url"] == "https://sensor.example.test/api/sensor/"
        assert config["key"] == "******"
        assert config["mode"] == MIDDLEWARE_MODE
        assert config["fields"] == ["userName", "ipAddress", "url", "eventTime", "eventType"]
        assert config["event_timeout"] == 30

    def test_from_settings(self):
        settings = Settings(sensor=SensorConfig(
            url="https://sensor.example.test",
            api_key="env-key",
            event_timeout=12,
            populated=False,
            fields=["pageTitle"],
        ))

        tracker = Tracker.from_settings(settings, mode=MIDDLEWARE_MODE)

        assert tracker.endpoint == "https://sensor.example.test/sensor/"
        assert tracker.mode == MIDDLEWARE_MODE
        assert tracker.options.event_timeout == 12
        assert "pageTitle" in tracker.store.field_set
        assert "userAgent" not in tracker.store.field_set
        tracker.close()

    def test_from_settings_without_url_raises(self):
        settings = Settings(sensor=SensorConfig(url="", api_key=""))
        with pytest.raises(ConfigurationError):
            Tracker.from_settings(settings)


class TestTrack:
    """Synchronous delivery through the facade."""

    def test_track_delivers_once(self, fake_session):
        tracker = make_tracker(fake_session)
        event = tracker.create_event()
        event.set_ip_address("1.1.1.1").set_url("/login")

        assert tracker.track(event) is True
        assert tracker.track(event) is False

        assert len(fake_session.calls) == 1
        form = fake_session.last_form
        assert form["userName"] == "1.1.1.1"
        assert form["url"] == "/login"
        assert tracker.get_event(event.correlation_id) is None

    def test_failed_delivery_is_retained(self, make_session):
        session = make_session(status_code=500)
        tracker = make_tracker(session)
        event = tracker.create_event()

        assert tracker.track(event) is False
        assert tracker.get_event(event.correlation_id) is event

        session.status_code = 204
        assert tracker.track(event) is True

    def test_event_from_another_tracker_is_ignored(self, fake_session, make_session):
        tracker = make_tracker(fake_session)
        other = make_tracker(make_session()).create_event()

        assert tracker.track(other) is False
        assert fake_session.calls == []

    def test_unexpected_errors_are_absorbed(self, caplog, make_session):
        tracker = make_tracker(make_session(error=RuntimeError("boom")))
        event = tracker.create_event()

        with caplog.at_level(logging.ERROR, logger="tracker.tracker"):
            assert tracker.track(event) is False

        assert tracker.get_event(event.correlation_id) is event
        assert any("Unexpected error" in r.getMessage() for r in caplog.records)

    def test_events_expire_through_facade(self, clock, fake_session):
        tracker = make_tracker(fake_session, options={"event_timeout": 10}, clock=clock)
        old = tracker.create_event()
        clock.advance(10)
        tracker.create_event()
        assert tracker.get_event(old.correlation_id) is None


class TestDispatch:
    """Background delivery on worker threads."""

    def test_dispatch_delivers_on_worker(self, fake_session):
        tracker = make_tracker(fake_session)
        event = tracker.create_event()
        event.set_ip_address("2.2.2.2").set_url("/")

        future = tracker.dispatch(event)

        assert future.result(timeout=5) is True
        assert fake_session.last_form["ipAddress"] == "2.2.2.2"
        tracker.close()

    def test_close_waits_for_pending_dispatches(self, fake_session):
        tracker = make_tracker(fake_session)
        events = [tracker.create_event() for _ in range(5)]
        for event in events:
            tracker.dispatch(event)

        tracker.close()

        assert len(fake_session.calls) == 5
        assert len(tracker.store) == 0
        assert fake_session.closed

    def test_dispatch_after_close_returns_none(self, fake_session):
        tracker = make_tracker(fake_session)
        tracker.close()
        assert tracker.dispatch(tracker.create_event()) is None
        assert fake_session.calls == []

    def test_context_manager_closes(self, fake_session):
        with make_tracker(fake_session) as tracker:
            tracker.dispatch(tracker.create_event())
        assert fake_session.closed
        assert len(fake_session.calls) == 1

    def test_closed_tracker_never_builds_a_new_pool(self, fake_session):
        tracker = make_tracker(fake_session)
        tracker.close()

        assert tracker.dispatch(tracker.create_event()) is None
        assert tracker._executor is None

    def test_failed_submit_is_absorbed(self, fake_session, monkeypatch):
        tracker = make_tracker(fake_session)

        class BrokenExecutor:
            def submit(self, fn, *args):
                raise ValueError("cannot schedule")

        monkeypatch.setattr(tracker, "_get_executor", lambda: BrokenExecutor())

        assert tracker.dispatch(tracker.create_event()) is None
        assert len(tracker.store) == 1
