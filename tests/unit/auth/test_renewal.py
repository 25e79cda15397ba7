"""Tests for background token renewal.

Most tests drive :meth:`TokenRenewer.renew_once` directly against a fake
clock. One test runs the real thread with a short interval.
"""

import threading
import time

import httpx
import pytest

from provision_client import Session
from provision_client.auth import TokenRenewer
from provision_client.errors import AuthError
from provision_client.testing import StubServer, counter, error_response

ENDPOINT = "https://drp.test"
TOKEN_PATH = "/api/v3/users/rocketskates/token"


def _login(server, clock, **kwargs) -> Session:
    return Session.authenticate(
        ENDPOINT,
        "rocketskates",
        "r0cketsk8ts",
        transport=server.transport,
        clock=clock,
        **kwargs,
    )


def _blocking_renewals():
    """A server whose first token is immediate and whose renewals block."""
    server = StubServer()
    entered = threading.Event()
    release = threading.Event()
    tokens = counter()

    def handler(request: httpx.Request) -> httpx.Response:
        value = next(tokens)
        if value != "tok-1":
            entered.set()
            release.wait(5)
        return httpx.Response(200, json={"Token": value})

    server.add("GET", TOKEN_PATH, handler=handler)
    return server, entered, release


def _threaded_login(server) -> Session:
    return Session.authenticate(
        ENDPOINT,
        "rocketskates",
        "r0cketsk8ts",
        transport=server.transport,
        token_ttl=1.0,
        renew_interval=0.05,
    )


class TestRenewOnce:
    """Token swaps driven by a fake clock."""

    @pytest.mark.unit
    def test_swaps_token_before_expiry(self, server, clock):
        """After one renewal interval the session uses the new token."""
        server.add_token_route("rocketskates", counter())
        server.add("GET", "/api/v3/machines", json=[])
        session = _login(server, clock, renew=False)
        renewer = TokenRenewer(session, threading.Event(), interval=300)

        session.list_models("machines")
        clock.advance(301)
        assert renewer.renew_once() is True
        session.list_models("machines")

        assert session.token == "tok-2"
        assert session.current_token.issued_at == clock.now
        sent = [r.headers["Authorization"] for r in server.requests_to("/api/v3/machines")]
        assert sent == ["Bearer tok-1", "Bearer tok-2"]
        assert renewer.renewals == 1

    @pytest.mark.unit
    def test_no_request_uses_expired_token(self, server, clock):
        """Renewing every 300s keeps a 600s token valid for every request."""
        server.add_token_route("rocketskates", counter())
        server.add("GET", "/api/v3/machines", json=[])
        session = _login(server, clock, renew=False)
        renewer = TokenRenewer(session, threading.Event(), interval=300)

        for _ in range(5):
            for _ in range(3):
                clock.advance(100)
                assert not session.current_token.is_expired(clock())
                session.list_models("machines")
            renewer.renew_once()

        sent = [r.headers["Authorization"] for r in server.requests_to("/api/v3/machines")]
        assert len(sent) == 15
        assert sent[-1] == "Bearer tok-5"
        assert session.token == "tok-6"

    @pytest.mark.unit
    def test_renewal_requests_ttl(self, server, clock):
        """Renewals ask for the same TTL and authenticate with the old token."""
        server.add_token_route("rocketskates", counter())
        session = _login(server, clock, renew=False, token_ttl=120, renew_interval=60)

        TokenRenewer(session, threading.Event()).renew_once()

        first, second = server.requests_to(TOKEN_PATH)
        assert first.url.params["ttl"] == "120"
        assert first.headers["Authorization"].startswith("Basic ")
        assert second.url.params["ttl"] == "120"
        assert second.headers["Authorization"] == "Bearer tok-1"

    @pytest.mark.unit
    def test_failure_invalidates_session(self, server, clock, caplog):
        """A failed renewal stops the session from sending anything else."""
        tokens = iter([httpx.Response(200, json={"Token": "tok-1"}), error_response(401, "expired")])
        server.add("GET", TOKEN_PATH, handler=lambda request: next(tokens))
        server.add("GET", "/api/v3/machines", json=[])
        session = _login(server, clock, renew=False)
        renewer = TokenRenewer(session, threading.Event())

        assert renewer.renew_once() is False
        calls = server.calls

        with pytest.raises(AuthError) as exc_info:
            session.list_models("machines")

        assert server.calls == calls
        assert "Session token could not be renewed" in exc_info.value.messages
        assert "expired" in exc_info.value.messages
        assert session.token == "tok-1"
        assert "Error renewing token" in caplog.text

    @pytest.mark.unit
    def test_renew_after_shutdown_does_nothing(self, server, clock):
        server.add_token_route("rocketskates", counter())
        session = _login(server, clock, renew=False)
        shutdown = threading.Event()
        shutdown.set()

        assert TokenRenewer(session, shutdown).renew_once() is False
        assert server.calls == 1


class TestRenewalThread:
    """The real daemon thread."""

    @pytest.mark.unit
    def test_thread_renews_and_stops_on_close(self):
        server = StubServer()
        server.add_token_route("rocketskates", counter())
        session = Session.authenticate(
            ENDPOINT,
            "rocketskates",
            "r0cketsk8ts",
            transport=server.transport,
            token_ttl=1.0,
            renew_interval=0.05,
        )
        renewer = session.renewer

        deadline = time.monotonic() + 5
        while session.token == "tok-1" and time.monotonic() < deadline:
            time.sleep(0.01)

        assert session.token != "tok-1"
        assert renewer.daemon

        session.close()

        assert not renewer.is_alive()
        calls = server.calls
        time.sleep(0.2)
        assert server.calls == calls

    @pytest.mark.unit
    def test_close_waits_for_in_flight_renewal(self):
        """close() returns only once a renewal already on the wire has finished."""
        server, entered, release = _blocking_renewals()
        session = _threaded_login(server)
        assert entered.wait(5)
        threading.Timer(0.2, release.set).start()

        session.close()

        assert release.is_set()
        assert not session.renewer.is_alive()
        assert session.token == "tok-1"
        assert session._http.is_closed

    @pytest.mark.unit
    def test_close_gives_up_after_timeout(self, caplog):
        server, entered, release = _blocking_renewals()
        session = _threaded_login(server)
        assert entered.wait(5)

        session.close(timeout=0.1)

        assert session.renewer.is_alive()
        assert "did not stop within 0.1s" in caplog.text
        release.set()
        session.renewer.join(timeout=5)
        assert not session.renewer.is_alive()
        assert session.token == "tok-1"

    @pytest.mark.unit
    def test_token_session_has_no_renewer(self, session):
        assert session.renewer is None
