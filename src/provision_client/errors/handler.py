"""Map HTTP error responses onto the exception hierarchy."""

import httpx

from provision_client.errors.exceptions import (
    APIError,
    BadRequestError,
    ClientError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    RateLimitError,
    ServerError,
    UnauthorizedError,
    ValidationError,
)
from provision_client.errors.models import ErrorBody

EXCEPTION_MAP: dict[int, type[APIError]] = {
    400: BadRequestError,
    401: UnauthorizedError,
    403: ForbiddenError,
    404: NotFoundError,
    409: ConflictError,
    422: ValidationError,
    429: RateLimitError,
}


def exception_class_for(status_code: int) -> type[APIError]:
    """Pick the exception class for a status code."""
    if status_code in EXCEPTION_MAP:
        return EXCEPTION_MAP[status_code]
    if 400 <= status_code < 500:
        return ClientError
    if 500 <= status_code < 600:
        return ServerError
    return APIError


def _retry_after(response: httpx.Response) -> int | None:
    value = response.headers.get("retry-after")
    if value is None:
        return None
    try:
        return int(value)
    except (ValueError, TypeError):
        return None


def error_for_status(status_code: int, message: str | None = None, **kwargs) -> APIError:
    """Build an error for a bare status code (no body to decode).

    Used for HEAD responses, where the reason phrase is the only message.
    """
    exc_class = exception_class_for(status_code)
    if message is None:
        message = httpx.codes.get_reason_phrase(status_code) or f"HTTP {status_code}"
    return exc_class(message, code=status_code, **kwargs)


def error_for_response(response: httpx.Response) -> APIError:
    """Build the exception matching an error response.

    The server's JSON error document is used when present; otherwise the
    status code and a snippet of the body become the message.

    Args:
        response: HTTP response with a status code >= 400

    Returns:
        APIError subclass instance based on status code
    """
    status_code = response.status_code
    exc_class = exception_class_for(status_code)
    body = ErrorBody.from_response(response)

    kwargs = {}
    if exc_class is RateLimitError:
        kwargs["retry_after"] = _retry_after(response)

    if body is None:
        response_text = response.text[:200]
        message = f"HTTP {status_code}: {response_text}" if response_text else f"HTTP {status_code}"
        return exc_class(message, code=status_code, response=response, **kwargs)

    return exc_class(
        type=body.type,
        model=body.model,
        key=body.key,
        code=body.code or status_code,
        messages=body.messages or [httpx.codes.get_reason_phrase(status_code)],
        response=response,
        **kwargs,
    )
