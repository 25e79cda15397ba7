"""Chainable description of a single API round trip.

Every configuration method returns the request itself. Problems found while
configuring (a bad URL, an odd number of header arguments, a malformed
filter) are recorded in the request's error accumulator instead of being
raised, so a chain can be written without checking anything between steps::

    machines = (
        session.request()
        .filter("machines", "Name", "Eq", "foo", "limit", "10")
        .do()
    )

:meth:`Request.do` is the single point where errors surface. If anything was
recorded during configuration it is raised there, and no network call is
made.

The body and the destination are picked explicitly at the call site:
:meth:`Request.body` sends JSON, :meth:`Request.raw_body` sends bytes or a
binary stream; :meth:`Request.do` decodes a JSON response and
:meth:`Request.do_stream` copies the response verbatim into a writable sink.
"""

import json
import logging
from collections.abc import Iterator, Sequence
from typing import IO, TYPE_CHECKING, Any

import httpx

from provision_client.errors import (
    APIError,
    AuthError,
    ConfigurationError,
    ConnectionClosedError,
    DecodeError,
    FilterError,
    ProtocolError,
    TransportError,
    error_for_response,
    error_for_status,
)
from provision_client.filters import filter_params
from provision_client.patch import Patch, generate_patch

if TYPE_CHECKING:
    from provision_client.models import Resource
    from provision_client.session import Session

logger = logging.getLogger(__name__)

JSON_TYPE = "application/json"
OCTET_STREAM = "application/octet-stream"
STREAM_CHUNK_SIZE = 64 * 1024


def _encode_default(obj: Any) -> Any:
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def _iter_stream(stream: IO[bytes]) -> Iterator[bytes]:
    while chunk := stream.read(STREAM_CHUNK_SIZE):
        yield chunk


class Request:
    """One configured-but-not-yet-executed HTTP call.

    Create requests with :meth:`Session.request`; they default to GET. A
    request is single use: it can be executed once and must not be shared
    between threads.

    Attributes:
        error: The error accumulator. Context (model, key) is filled in as
            the request learns it.
        paranoid: Generate paranoid patches (see :meth:`paranoid_patch`).
        http_request: The ``httpx.Request`` that was sent, once executed.
        response: The ``httpx.Response`` received, once executed.
    """

    def __init__(self, session: "Session", *, trace_level: str = "", trace_token: str = ""):
        self._session = session
        self._method = "GET"
        self.url: httpx.URL | None = None
        self._query: list[tuple[str, str]] = []
        self._headers: list[tuple[str, str]] = []
        self._content: bytes | Iterator[bytes] | None = None
        self._trace_level = trace_level
        self._trace_token = trace_token
        self._executed = False
        self._auth: httpx.Auth | None = None
        self.error = ConfigurationError()
        self.paranoid = False
        self.http_request: httpx.Request | None = None
        self.response: httpx.Response | None = None

    @property
    def http_method(self) -> str:
        return self._method

    # Tracing

    def trace(self, level: str) -> "Request":
        """Ask the server to log this request at ``level``.

        Overrides the session's trace level. An empty string turns tracing
        off for this request.
        """
        self._trace_level = level
        return self

    def trace_token(self, token: str) -> "Request":
        """Tag server-side logs for this request with ``token``."""
        self._trace_token = token
        return self

    # Methods

    def method(self, method: str) -> "Request":
        self._method = method.upper()
        return self

    def get(self) -> "Request":
        return self.method("GET")

    def head(self) -> "Request":
        return self.method("HEAD")

    def delete(self) -> "Request":
        return self.method("DELETE")

    def list(self, prefix: str) -> "Request":
        return self.get().url_for(prefix)

    def post(self, body: Any) -> "Request":
        """POST ``body`` encoded as JSON."""
        return self.method("POST").body(body)

    def put(self, body: Any) -> "Request":
        """PUT ``body`` encoded as JSON. Pass None for no body."""
        return self.method("PUT").body(body)

    def post_raw(self, data: bytes | IO[bytes]) -> "Request":
        """POST raw bytes or a binary stream. The caller closes the stream."""
        return self.method("POST").raw_body(data)

    def put_raw(self, data: bytes | IO[bytes]) -> "Request":
        return self.method("PUT").raw_body(data)

    def patch(self, patch: Patch | Sequence[dict[str, Any]]) -> "Request":
        """PATCH with an RFC 6902 patch document."""
        return self.method("PATCH").body(patch)

    def paranoid_patch(self) -> "Request":
        """Make later patch_obj/patch_to calls emit test operations.

        Must be called before :meth:`patch_obj` or :meth:`patch_to`.
        """
        self.paranoid = True
        return self

    def patch_obj(self, old: Any, new: Any) -> "Request":
        """PATCH with the difference between ``old`` and ``new``."""
        try:
            patch = generate_patch(old, new, self.paranoid)
        except APIError as e:
            self._note_context(e.model, e.key)
            self.error.add_error(e)
            return self
        return self.patch(patch)

    def patch_to(self, old: "Resource", new: "Resource") -> "Request":
        """PATCH the server copy of ``old`` so it becomes ``new``.

        Both must have the same prefix and key.
        """
        if not old.same_identity(new):
            self._note_context(old.prefix, old.key)
            self.error.errorf(
                "Cannot patch from %s to %s, or change keys from %s to %s",
                old.prefix,
                new.prefix,
                old.key,
                new.key,
            )
            return self
        return self.patch_obj(old, new).url_for_model(old)

    # URL

    def url_for(self, *parts: str) -> "Request":
        """Target ``<endpoint>/api/v3/<parts joined by '/'>``."""
        try:
            self.url = self._session.url_for(*parts)
        except ConfigurationError as e:
            self.error.add_error(e)
        return self

    def url_for_model(self, model: "Resource", *rest: str) -> "Request":
        """Target ``/api/v3/<prefix>/<key>/<rest...>``; an empty key is omitted."""
        self._note_context(model.prefix, model.key)
        return self.url_for(model.prefix, model.key, *rest)

    def params(self, *args: str) -> "Request":
        """Set the query string from name/value pairs.

        :meth:`url_for` or :meth:`url_for_model` must be called first. Any
        previous query is replaced.
        """
        if self.url is None:
            self.error.errorf("Cannot call params before url_for or url_for_model")
            return self
        if len(args) % 2 == 1:
            self.error.errorf("params was not passed an even number of arguments")
            return self
        self._query = [(args[i], args[i + 1]) for i in range(0, len(args), 2)]
        return self

    def filter(self, prefix: str, *tokens: str) -> "Request":
        """List ``prefix`` filtered by index operations.

        See :mod:`provision_client.filters` for the token grammar. Malformed
        filters are reported when the request is executed.
        """
        self.get().url_for(prefix)
        try:
            pairs = filter_params(tokens)
        except FilterError as e:
            self.error.add_error(e)
            return self
        flat: list[str] = []
        for name, value in pairs:
            flat.extend((name, value))
        return self.params(*flat)

    # Headers and body

    def headers(self, *args: str) -> "Request":
        """Add headers from name/value pairs."""
        if len(args) % 2 == 1:
            self.error.errorf("headers was not passed an even number of arguments")
            return self
        for i in range(0, len(args), 2):
            self._headers.append((args[i], args[i + 1]))
        return self

    def auth(self, auth: httpx.Auth | None) -> "Request":
        """Authenticate with ``auth`` instead of the session's bearer token."""
        self._auth = auth
        return self

    def _set_header(self, name: str, value: str) -> None:
        lowered = name.lower()
        self._headers = [(k, v) for k, v in self._headers if k.lower() != lowered]
        self._headers.append((name, value))

    def _has_header(self, name: str) -> bool:
        lowered = name.lower()
        return any(k.lower() == lowered for k, _ in self._headers)

    def body(self, value: Any) -> "Request":
        """Send ``value`` encoded as JSON.

        Resources and patches are encoded through their ``to_dict``. None
        sends no body but still declares a JSON content type.
        """
        self._set_header("Content-Type", JSON_TYPE)
        if value is None:
            self._content = None
            return self
        try:
            self._content = json.dumps(value, default=_encode_default).encode()
        except (TypeError, ValueError) as e:
            self.error.add_error(e)
        return self

    def raw_body(self, data: bytes | IO[bytes]) -> "Request":
        """Send ``data`` verbatim as ``application/octet-stream``."""
        self._set_header("Content-Type", OCTET_STREAM)
        if isinstance(data, (bytes, bytearray)):
            self._content = bytes(data)
        else:
            self._content = _iter_stream(data)
        return self

    # Execution shortcuts

    def fill(self, model: "Resource") -> "Resource":
        """Refresh ``model`` from the server."""
        self._note_context(model.prefix, model.key)
        if not model.key:
            self.error.errorf("Cannot Fill %s with an empty key", model.prefix)
            raise self.error
        return model.update(self.get().url_for_model(model).do())

    def delete_model(self, model: "Resource") -> "Resource":
        """Delete ``model`` on the server; it is updated with the deleted copy."""
        self._note_context(model.prefix, model.key)
        if not model.key:
            self.error.errorf("Cannot Delete %s with an empty key", model.prefix)
            raise self.error
        return model.update(self.delete().url_for_model(model).do())

    # Execution

    def do(self) -> Any:
        """Execute the request and decode the JSON response.

        Returns:
            The decoded body, or None for HEAD requests and empty bodies.

        Raises:
            ConfigurationError: No URL, or errors recorded while configuring.
            ConnectionClosedError: The session was closed.
            AuthError: The session could not renew its token.
            TransportError: The server could not be reached.
            ProtocolError: The response was not JSON, or its body was cut short.
            DecodeError: The JSON response could not be decoded.
            APIError: Server-reported error, subclass chosen by status.
        """
        response = self._send(JSON_TYPE)
        try:
            return self._decode(response)
        finally:
            response.close()

    def do_stream(self, sink: IO[bytes]) -> int | None:
        """Execute the request and copy a successful response into ``sink``.

        Returns:
            Number of bytes written, or the decoded body when the server did
            not answer with a success status but still sent JSON.
        """
        response = self._send(OCTET_STREAM)
        try:
            if response.status_code < 300:
                written = 0
                try:
                    for chunk in response.iter_bytes():
                        sink.write(chunk)
                        written += len(chunk)
                except (OSError, httpx.HTTPError) as e:
                    self.error.add_error(e)
                    raise TransportError(
                        model=self.error.model, key=self.error.key, messages=self.error.messages
                    ) from e
                return written
            return self._decode(response)
        finally:
            response.close()

    def _note_context(self, model: str, key: str) -> None:
        if model:
            self.error.model = model
        if key:
            self.error.key = key

    def _context(self) -> dict[str, str]:
        return {"model": self.error.model, "key": self.error.key}

    def _check(self) -> None:
        if self._executed:
            raise ConfigurationError("Request has already been executed", **self._context())
        if self.url is None:
            self.error.errorf("No URL to talk to")
            raise self.error
        if self._session.closed:
            raise ConnectionClosedError("Connection Closed", **self._context())
        renewal_error = self._session.renewal_error
        if renewal_error is not None:
            raise AuthError("Session token could not be renewed", **self._context()).add_error(renewal_error)
        if self.error.contains_error():
            raise self.error

    def _send(self, accept: str) -> httpx.Response:
        self._check()
        self._executed = True

        if self._trace_level:
            self._set_header("X-Log-Request", self._trace_level)
            if self._trace_token:
                self._set_header("X-Log-Token", self._trace_token)
        self._set_header("Accept", accept)

        url = self.url
        if self._query:
            url = url.copy_with(params=httpx.QueryParams(self._query))

        request = self._session.build_request(self._method, url, headers=self._headers, content=self._content)
        self.http_request = request
        try:
            response = self._session.send(request, auth=self._auth)
        except httpx.HTTPError as e:
            self.error.add_error(e)
            raise TransportError(messages=self.error.messages, **self._context()) from e
        self.response = response
        return response

    def _decode(self, response: httpx.Response) -> Any:
        status = response.status_code
        if self._method == "HEAD":
            if status <= 300:
                return None
            raise error_for_status(status, response=response, **self._context())

        content_type = response.headers.get("content-type", "")
        media_type = content_type.split(";", 1)[0].strip().lower()
        try:
            raw = response.read()
        except httpx.HTTPError as e:
            self.error.add_error(e)
            raise ProtocolError(
                code=status,
                messages=self.error.messages,
                response=response,
                **self._context(),
            ) from e

        if media_type != JSON_TYPE:
            if not raw and not content_type and status < 300:
                return None
            logger.error(
                f"Got {content_type!r} from {self._method} {response.request.url} "
                f"(HTTP {status}): {raw.decode(errors='replace')}"
            )
            raise ProtocolError(
                f"Cannot handle content-type {content_type}",
                code=status,
                response=response,
                **self._context(),
            )

        if status >= 400:
            err = error_for_response(response)
            err.model = err.model or self.error.model
            err.key = err.key or self.error.key
            raise err

        if not raw:
            return None
        try:
            return json.loads(raw)
        except ValueError as e:
            self.error.add_error(e)
            raise DecodeError(
                code=status,
                messages=self.error.messages,
                response=response,
                **self._context(),
            ) from e
