"""Error types and HTTP error mapping for the provisioning client."""

from provision_client.errors.exceptions import (
    APIError,
    AuthError,
    BadRequestError,
    ClientError,
    ConfigurationError,
    ConflictError,
    ConnectionClosedError,
    DecodeError,
    FilterError,
    ForbiddenError,
    IdentityMismatchError,
    NotFoundError,
    PatchError,
    PatchTestError,
    ProtocolError,
    RateLimitError,
    ServerError,
    TransportError,
    UnauthorizedError,
    UnknownModelError,
    ValidationError,
)
from provision_client.errors.handler import (
    error_for_response,
    error_for_status,
    exception_class_for,
)
from provision_client.errors.models import ErrorBody

__all__ = [
    "APIError",
    "AuthError",
    "BadRequestError",
    "ClientError",
    "ConfigurationError",
    "ConflictError",
    "ConnectionClosedError",
    "DecodeError",
    "ErrorBody",
    "FilterError",
    "ForbiddenError",
    "IdentityMismatchError",
    "NotFoundError",
    "PatchError",
    "PatchTestError",
    "ProtocolError",
    "RateLimitError",
    "ServerError",
    "TransportError",
    "UnauthorizedError",
    "UnknownModelError",
    "ValidationError",
    "error_for_response",
    "error_for_status",
    "exception_class_for",
]
