"""Structured exceptions for provisioning API errors.

Every failure the client can produce is an :class:`APIError`. The same class
doubles as the error accumulator used by the request builder: configuration
problems are recorded with :meth:`APIError.errorf` or merged with
:meth:`APIError.add_error` and only raised once the request is executed.
"""

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    import httpx


class APIError(Exception):
    """Base exception for all client and server errors.

    Attributes:
        type: Category tag, e.g. ``CLIENT_ERROR`` or the server-reported type.
        model: Resource type prefix the error relates to, if known.
        key: Resource key the error relates to, if known.
        code: HTTP status code, 0 if no response was received.
        messages: Human-readable messages, oldest first.
        response: The HTTP response that produced the error, if any.
    """

    default_type = "CLIENT_ERROR"

    def __init__(
        self,
        message: str | None = None,
        *,
        type: str | None = None,
        model: str = "",
        key: str = "",
        code: int = 0,
        messages: list[str] | None = None,
        response: "httpx.Response | None" = None,
    ):
        super().__init__()
        self.type = type or self.default_type
        self.model = model
        self.key = key
        self.code = code
        self.messages: list[str] = list(messages) if messages else []
        if message:
            self.messages.append(message)
        self.response = response

    @property
    def status_code(self) -> int:
        return self.code

    def errorf(self, fmt: str, *args: Any) -> "APIError":
        """Append a printf-style formatted message."""
        self.messages.append(fmt % args if args else fmt)
        return self

    def add_error(self, err: BaseException | None) -> "APIError":
        """Merge another error into this one.

        ``None`` is ignored. Another :class:`APIError` contributes its
        messages (and its code, if this error has none yet); anything else
        contributes ``str(err)``.
        """
        if err is None:
            return self
        if isinstance(err, APIError):
            self.messages.extend(err.messages)
            if not self.code:
                self.code = err.code
        else:
            self.messages.append(str(err))
        return self

    def contains_error(self) -> bool:
        return bool(self.messages)

    def has_error(self) -> "APIError | None":
        """Return ``self`` when at least one message was recorded, else None."""
        return self if self.contains_error() else None

    def to_dict(self) -> dict[str, Any]:
        return {
            "Type": self.type,
            "Model": self.model,
            "Key": self.key,
            "Code": self.code,
            "Messages": list(self.messages),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], **kwargs: Any) -> "APIError":
        return cls(
            type=data.get("Type") or None,
            model=data.get("Model") or "",
            key=data.get("Key") or "",
            code=data.get("Code") or 0,
            messages=list(data.get("Messages") or []),
            **kwargs,
        )

    def __str__(self) -> str:
        prefix = self.type
        if self.model:
            prefix += f": {self.model}"
            if self.key:
                prefix += f"/{self.key}"
        if self.code:
            prefix += f" (HTTP {self.code})"
        if not self.messages:
            return prefix
        if len(self.messages) == 1:
            return f"{prefix}: {self.messages[0]}"
        return prefix + ":\n" + "\n".join(f"  - {m}" for m in self.messages)


class ConfigurationError(APIError):
    """Request chain was misused: bad URL arguments, odd pair counts, etc."""

    pass


class FilterError(ConfigurationError):
    """Filter token sequence did not follow the filter grammar."""

    pass


class IdentityMismatchError(ConfigurationError):
    """Patch requested between objects of different type or key."""

    pass


class UnknownModelError(ConfigurationError):
    """No resource type is registered under the requested prefix."""

    pass


class PatchError(APIError):
    """A JSON patch could not be applied."""

    default_type = "PATCH_ERROR"


class PatchTestError(PatchError):
    """A patch test operation did not match the current value."""

    pass


class ConnectionClosedError(APIError):
    """The session was closed before the request was executed."""

    pass


class AuthError(APIError):
    """Authentication failed or the session can no longer renew its token."""

    default_type = "AUTH_ERROR"


class TransportError(APIError):
    """Network-level failure: DNS, connect, TLS or timeout."""

    pass


class ProtocolError(APIError):
    """Response could not be handled, e.g. an unsupported content type."""

    pass


class DecodeError(APIError):
    """A JSON body could not be decoded."""

    pass


class ClientError(APIError):
    """4xx errors reported by the server."""

    default_type = "API_ERROR"


class BadRequestError(ClientError):
    """400 Bad Request."""

    pass


class UnauthorizedError(ClientError):
    """401 Unauthorized."""

    pass


class ForbiddenError(ClientError):
    """403 Forbidden."""

    pass


class NotFoundError(ClientError):
    """404 Not Found."""

    pass


class ConflictError(ClientError):
    """409 Conflict. Also raised when a paranoid patch test fails."""

    pass


class ValidationError(ClientError):
    """422 Unprocessable Entity (validation errors)."""

    pass


class RateLimitError(ClientError):
    """429 Too Many Requests.

    The client never retries; ``retry_after`` is exposed for caller policy.
    """

    def __init__(self, message: str | None = None, retry_after: int | None = None, **kwargs):
        super().__init__(message, **kwargs)
        self.retry_after = retry_after


class ServerError(APIError):
    """5xx server errors."""

    default_type = "API_ERROR"
