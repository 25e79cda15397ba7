"""Bearer token issued by the provisioning server."""

from dataclasses import dataclass
from typing import Any

from provision_client.errors import AuthError

# Lifetime requested for tokens issued to username/password sessions.
TOKEN_TTL = 600
# How often a username/password session renews its token.
RENEW_INTERVAL = 300


@dataclass(frozen=True)
class Token:
    """Immutable snapshot of a bearer token.

    A session replaces its token wholesale on renewal; tokens are never
    modified in place.

    Attributes:
        value: Opaque token string sent as ``Authorization: Bearer <value>``.
        ttl: Validity window in seconds, None when unknown (externally
            supplied tokens).
        issued_at: Clock reading when the token was obtained.
    """

    value: str
    ttl: float | None = None
    issued_at: float = 0.0

    @property
    def expires_at(self) -> float | None:
        if self.ttl is None:
            return None
        return self.issued_at + self.ttl

    def is_expired(self, now: float) -> bool:
        expires_at = self.expires_at
        return expires_at is not None and now >= expires_at

    @classmethod
    def from_response(cls, data: Any, ttl: float | None, issued_at: float) -> "Token":
        """Build a token from the ``users/<name>/token`` response body.

        Raises:
            AuthError: If the body carries no token.
        """
        if not isinstance(data, dict) or not data.get("Token"):
            raise AuthError("Server response did not contain a token")
        return cls(value=str(data["Token"]), ttl=ttl, issued_at=issued_at)

    def __repr__(self) -> str:
        return f"Token(value='***', ttl={self.ttl!r}, issued_at={self.issued_at!r})"
