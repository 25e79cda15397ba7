"""Authentication components for provisioning sessions.

- Credential resolution (value → env → .env → default)
- Bearer tokens and their validity window
- Background token renewal for username/password sessions

Example:
    ```python
    from provision_client.auth import CredentialResolver

    resolver = CredentialResolver()
    key = resolver.resolve_key(env_var_name="RS_KEY")
    ```
"""

from provision_client.auth.credentials import CredentialResolver
from provision_client.auth.exceptions import (
    CredentialError,
    CredentialFileError,
    CredentialFormatError,
    CredentialNotFoundError,
)
from provision_client.auth.renewal import TokenRenewer
from provision_client.auth.token import RENEW_INTERVAL, TOKEN_TTL, Token

__all__ = [
    "RENEW_INTERVAL",
    "TOKEN_TTL",
    "CredentialError",
    "CredentialFileError",
    "CredentialFormatError",
    "CredentialNotFoundError",
    "CredentialResolver",
    "Token",
    "TokenRenewer",
]
