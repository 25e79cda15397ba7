"""Testing utilities for code built on the provisioning client.

:class:`StubServer` fakes the provisioning API on top of
``httpx.MockTransport`` and records every request it sees, so tests can
assert what was sent, or that nothing was sent at all.

Example:
    ```python
    from provision_client import Session
    from provision_client.testing import StubServer

    def test_lists_machines():
        server = StubServer()
        server.add("GET", "/api/v3/machines", json=[{"Uuid": "m1", "Name": "foo"}])
        session = Session.from_token("https://drp.test", "tok", transport=server.transport)

        machines = session.list_models("machines")

        assert machines[0].key == "m1"
        assert server.calls == 1
    ```
"""

import itertools
from collections.abc import Callable, Iterable
from typing import Any

import httpx

Handler = Callable[[httpx.Request], httpx.Response]


def error_response(status_code: int, *messages: str, model: str = "", key: str = "") -> httpx.Response:
    """A JSON error document as the server would send it."""
    return httpx.Response(
        status_code,
        json={
            "Model": model,
            "Key": key,
            "Type": "API_ERROR",
            "Messages": list(messages) or [httpx.codes.get_reason_phrase(status_code)],
            "Code": status_code,
        },
    )


class StubServer:
    """In-memory stand-in for the provisioning API.

    Routes are matched on method and exact URL path. Unmatched requests get
    a 404 error document.

    Attributes:
        requests: Every request received, in order.
    """

    def __init__(self) -> None:
        self._routes: dict[tuple[str, str], Handler] = {}
        self.requests: list[httpx.Request] = []

    def add(
        self,
        method: str,
        path: str,
        *,
        handler: Handler | None = None,
        json: Any = None,
        status_code: int = 200,
        headers: dict[str, str] | None = None,
        content: bytes | None = None,
    ) -> None:
        """Register a route.

        Either pass a ``handler`` or describe a fixed response.
        """
        if handler is None:

            def handler(request: httpx.Request) -> httpx.Response:
                if content is not None:
                    return httpx.Response(status_code, headers=headers, content=content)
                return httpx.Response(status_code, headers=headers, json=json)

        self._routes[(method.upper(), path)] = handler

    def add_token_route(self, username: str, tokens: Iterable[str]) -> None:
        """Serve successive tokens from ``users/<username>/token``.

        The last token repeats once the iterable is exhausted.
        """
        source = iter(tokens)
        last: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            value = next(source, None)
            if value is None:
                value = last[-1]
            last.append(value)
            return httpx.Response(200, json={"Token": value, "Info": {}})

        self.add("GET", f"/api/v3/users/{username}/token", handler=handler)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self._routes.get((request.method, request.url.path))
        if handler is None:
            return error_response(404, "Not Found", key=request.url.path)
        return handler(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self._handle)

    @property
    def calls(self) -> int:
        return len(self.requests)

    def requests_to(self, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]

    def bearer_tokens(self) -> list[str]:
        """Bearer tokens seen, in request order, skipping other auth schemes."""
        tokens = []
        for request in self.requests:
            auth = request.headers.get("Authorization", "")
            if auth.startswith("Bearer "):
                tokens.append(auth[len("Bearer ") :])
        return tokens


def counter(start: int = 1) -> Iterable[str]:
    """Endless token values ``tok-1``, ``tok-2``, ..."""
    return (f"tok-{i}" for i in itertools.count(start))


__all__ = ["StubServer", "counter", "error_response"]
