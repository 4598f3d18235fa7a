"""
Shared fixtures: a fake HTTP session standing in for requests.Session and a
controllable clock for expiry tests.
"""

import pytest


class FakeResponse:
    def __init__(self, status_code: int):
        self.status_code = status_code


class FakeSession:
    """Records every POST and answers with a fixed status (or raises)."""

    def __init__(self, status_code: int = 204, error: Exception = None):
        self.status_code = status_code
        self.error = error
        self.calls = []
        self.closed = False

    def post(self, url, data=None, headers=None, timeout=None):
        self.calls.append({"url": url, "data": data, "headers": headers, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return FakeResponse(self.status_code)

    def close(self):
        self.closed = True

    @property
    def last_form(self) -> dict:
        return dict(self.calls[-1]["data"])


class FakeClock:
    """Epoch-seconds clock that only moves when told to."""

    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def fake_session():
    return FakeSession()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_session():
    """Factory for sessions with a non-default status or transport error."""
    return FakeSession
