"""Authenticated session against a provisioning server.

A :class:`Session` owns the pooled HTTP client, the current bearer token and,
for username/password sessions, the background thread that renews that
token. Every request is built from a session::

    with Session.authenticate("https://127.0.0.1:8092", "rocketskates", "r0cketsk8ts") as session:
        machine = session.get_model("machines", "3f2c...")

Sessions created from a bare token never renew it; rotating such a token is
up to the caller.
"""

import logging
import posixpath
import threading
import time
from collections.abc import Callable
from typing import Any

import httpx

from provision_client.auth.exceptions import CredentialNotFoundError
from provision_client.auth.renewal import TokenRenewer
from provision_client.auth.token import RENEW_INTERVAL, TOKEN_TTL, Token
from provision_client.client import ResourceClient
from provision_client.config import ClientConfig
from provision_client.errors import APIError, AuthError, ConfigurationError
from provision_client.models import ModelRegistry, default_registry
from provision_client.request import Request
from provision_client.transport.factory import DEFAULT_CONNECT_TIMEOUT, create_http_client

logger = logging.getLogger(__name__)

APIPATH = "/api/v3"
CLOSE_TIMEOUT = 10.0


class Session(ResourceClient):
    """Long-lived authenticated connection context.

    Use :meth:`authenticate`, :meth:`from_token` or :meth:`from_config`
    rather than calling the constructor directly.

    Args:
        endpoint: Server URL, e.g. ``https://127.0.0.1:8092``.
        http_client: Client all requests are sent through. The session
            takes ownership of it.
        token: Initial token, if already known.
        username: User the session acts for; needed for renewal.
        registry: Resource types known to this session.
        clock: Monotonic clock used to stamp tokens.
        token_ttl: Lifetime requested for renewed tokens, in seconds.
    """

    def __init__(
        self,
        endpoint: str,
        http_client: httpx.Client,
        *,
        token: Token | None = None,
        username: str = "",
        registry: ModelRegistry | None = None,
        clock: Callable[[], float] = time.monotonic,
        token_ttl: float = TOKEN_TTL,
    ):
        self.endpoint = endpoint.rstrip("/")
        self.username = username
        self.registry = registry if registry is not None else default_registry()
        self.clock = clock
        self.token_ttl = token_ttl
        self._http = http_client
        self._lock = threading.Lock()
        self._token = token
        self._trace_level = ""
        self._trace_token = ""
        self._closed = False
        self._shutdown = threading.Event()
        self._renewer: TokenRenewer | None = None
        self._renewal_error: BaseException | None = None

    # Construction

    @classmethod
    def authenticate(
        cls,
        endpoint: str,
        username: str,
        password: str,
        *,
        verify: bool = False,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        read_timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
        token_ttl: float = TOKEN_TTL,
        renew_interval: float = RENEW_INTERVAL,
        renew: bool = True,
        registry: ModelRegistry | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> "Session":
        """Log in with a username and password.

        Performs one blocking request for a token valid for ``token_ttl``
        seconds, then (unless ``renew`` is False) starts a daemon thread that
        renews it every ``renew_interval`` seconds.

        Raises:
            ConfigurationError: If ``renew_interval`` is not shorter than
                ``token_ttl``.
            AuthError: If the server cannot be reached or rejects the
                credentials.
        """
        if renew and renew_interval >= token_ttl:
            raise ConfigurationError(
                f"Renewal interval {renew_interval}s must be shorter than the token TTL {token_ttl}s"
            )
        http_client = create_http_client(
            verify=verify,
            connect_timeout=connect_timeout,
            read_timeout=read_timeout,
            transport=transport,
        )
        session = cls(
            endpoint,
            http_client,
            username=username,
            registry=registry,
            clock=clock,
            token_ttl=token_ttl,
        )
        try:
            session._token = session.fetch_token(httpx.BasicAuth(username, password))
        except APIError as e:
            http_client.close()
            err = AuthError(f"Failed to authenticate as {username}", code=e.code, model="users", key=username)
            err.add_error(e)
            raise err from e

        logger.info(f"Authenticated to {session.endpoint} as {username}")
        if renew:
            session._start_renewal(renew_interval)
        return session

    @classmethod
    def from_token(
        cls,
        endpoint: str,
        token: str,
        *,
        verify: bool = False,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        read_timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
        registry: ModelRegistry | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> "Session":
        """Bind a session to a token obtained elsewhere. No renewal runs."""
        http_client = create_http_client(
            verify=verify,
            connect_timeout=connect_timeout,
            read_timeout=read_timeout,
            transport=transport,
        )
        return cls(
            endpoint,
            http_client,
            token=Token(value=token, issued_at=clock()),
            registry=registry,
            clock=clock,
        )

    @classmethod
    def from_config(cls, config: ClientConfig, **kwargs: Any) -> "Session":
        """Open a session from a :class:`ClientConfig`.

        A configured token wins over username/password.

        Raises:
            CredentialNotFoundError: If neither a token nor a username is set.
        """
        common = {
            "verify": config.verify_tls,
            "connect_timeout": config.connect_timeout,
            "read_timeout": config.read_timeout,
            **kwargs,
        }
        if config.uses_token:
            session = cls.from_token(config.endpoint, config.token, **common)
        elif config.username:
            session = cls.authenticate(
                config.endpoint,
                config.username,
                config.password or "",
                token_ttl=config.token_ttl,
                renew_interval=config.renew_interval,
                **common,
            )
        else:
            raise CredentialNotFoundError("No token or username configured", env_var_name="RS_KEY")
        if config.trace_level:
            session.trace(config.trace_level)
        if config.trace_token:
            session.trace_token(config.trace_token)
        return session

    # Token lifecycle

    def fetch_token(self, auth: httpx.Auth | None = None) -> Token:
        """Request a fresh token for this session's user.

        ``auth`` replaces the bearer authorization; the initial login passes
        ``httpx.BasicAuth`` with the user's password.
        """
        issued_at = self.clock()
        data = (
            self.request()
            .url_for("users", self.username, "token")
            .params("ttl", str(int(self.token_ttl)))
            .auth(auth)
            .do()
        )
        return Token.from_response(data, ttl=self.token_ttl, issued_at=issued_at)

    def renew_token(self) -> Token:
        """Fetch a new token and swap it in atomically."""
        token = self.fetch_token()
        with self._lock:
            if self._closed:
                return token
            self._token = token
        logger.debug(f"Swapped session token for {self.username}")
        return token

    def invalidate(self, err: BaseException) -> None:
        """Mark the session unable to authenticate further requests."""
        with self._lock:
            self._renewal_error = err

    def _start_renewal(self, interval: float) -> None:
        self._renewer = TokenRenewer(self, self._shutdown, interval=interval)
        self._renewer.start()

    @property
    def renewer(self) -> TokenRenewer | None:
        return self._renewer

    @property
    def renewal_error(self) -> BaseException | None:
        with self._lock:
            return self._renewal_error

    @property
    def current_token(self) -> Token | None:
        with self._lock:
            return self._token

    @property
    def token(self) -> str:
        """The current bearer token string, empty if there is none."""
        token = self.current_token
        return token.value if token is not None else ""

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    # Tracing

    def trace(self, level: str) -> None:
        """Set the server-side log level for requests created from now on.

        An empty string turns tracing off.
        """
        with self._lock:
            self._trace_level = level

    def trace_token(self, token: str) -> None:
        """Set the token the server logs alongside traced requests."""
        with self._lock:
            self._trace_token = token

    # Requests

    def request(self) -> Request:
        """Start building a new request. It defaults to GET."""
        with self._lock:
            return Request(self, trace_level=self._trace_level, trace_token=self._trace_token)

    def url_for(self, *parts: str) -> httpx.URL:
        """Build ``<endpoint>/api/v3/<parts...>``.

        Empty parts are dropped and the path is normalized.

        Raises:
            ConfigurationError: If the result is not an absolute URL.
        """
        joined = "/".join(part for part in parts if part)
        path = posixpath.normpath(f"{APIPATH}/{joined}") if joined else APIPATH
        try:
            url = httpx.URL(self.endpoint + path)
        except httpx.InvalidURL as e:
            raise ConfigurationError(f"Invalid URL {self.endpoint + path}: {e}") from e
        if not url.is_absolute_url:
            raise ConfigurationError(f"Invalid URL {self.endpoint + path}: endpoint must include scheme and host")
        return url

    def authorize(self, request: httpx.Request) -> httpx.Request:
        """Add the bearer Authorization header unless one is already set."""
        if "Authorization" not in request.headers:
            request.headers["Authorization"] = f"Bearer {self.token}"
        return request

    def build_request(
        self,
        method: str,
        url: httpx.URL,
        *,
        headers: list[tuple[str, str]] | None = None,
        content: Any = None,
    ) -> httpx.Request:
        request = self._http.build_request(method, url, headers=headers, content=content)
        return self.authorize(request)

    def send(self, request: httpx.Request, auth: httpx.Auth | None = None) -> httpx.Response:
        """Send a prepared request; the caller must close the response."""
        return self._http.send(request, stream=True, auth=auth)

    # Shutdown

    def close(self, timeout: float = CLOSE_TIMEOUT) -> None:
        """Stop token renewal, refuse further requests and release the pool.

        Waits up to ``timeout`` seconds for an in-flight renewal to finish
        before the HTTP client is closed. A second call does nothing.
        """
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self._shutdown.set()
        renewer = self._renewer
        if renewer is not None and renewer is not threading.current_thread():
            renewer.join(timeout)
            if renewer.is_alive():
                logger.warning(f"Token renewal for {self.username} did not stop within {timeout}s")
        self._http.close()
        logger.info(f"Closed session to {self.endpoint}")

    def __enter__(self) -> "Session":
        return self

    def __exit__(self, exc_type=None, exc_val=None, exc_tb=None) -> None:
        self.close()
