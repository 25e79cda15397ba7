"""Pytest configuration and shared fixtures for provision-client tests."""

import pytest

from provision_client import Session
from provision_client.testing import StubServer

ENDPOINT = "https://drp.test"


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(autouse=True)
def clear_env(monkeypatch):
    """Auto-cleanup: Clear session-related environment variables before each test.

    This prevents test pollution when testing credential resolution.
    """
    import os

    test_prefixes = ("TEST_", "RS_")

    for key in list(os.environ.keys()):
        if any(key.startswith(prefix) for prefix in test_prefixes):
            monkeypatch.delenv(key, raising=False)

    yield


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def server():
    return StubServer()


@pytest.fixture
def session(server):
    """Token session talking to the stub server."""
    sess = Session.from_token(ENDPOINT, "tok", transport=server.transport)
    yield sess
    sess.close()
