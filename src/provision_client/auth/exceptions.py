"""Exceptions raised while resolving session credentials.

These describe problems with local configuration (a missing ``RS_ENDPOINT``,
a malformed ``RS_KEY``), before any request reaches the server. Failures
reported by the server are :class:`provision_client.errors.AuthError`.

Example:
    ```python
    from provision_client.auth.exceptions import CredentialNotFoundError

    if not token and not username:
        raise CredentialNotFoundError("No credentials configured", env_var_name="RS_KEY")
    ```
"""


class CredentialError(Exception):
    """Base exception for credential-related errors.

    All credential-specific exceptions inherit from this class,
    making it easy to catch any credential-related error.
    """

    pass


class CredentialNotFoundError(CredentialError):
    """Raised when a required credential cannot be resolved.

    Attributes:
        env_var_name: The environment variable name that was checked (if any).

    Example:
        ```python
        try:
            config = ClientConfig.from_env()
            session = Session.from_config(config)
        except CredentialNotFoundError as e:
            print(f"Missing credential: {e.env_var_name}")
        ```
    """

    def __init__(self, message: str, env_var_name: str | None = None):
        """Initialize CredentialNotFoundError.

        Args:
            message: Error message describing what credential is missing.
            env_var_name: Optional environment variable name for reference.
        """
        super().__init__(message)
        self.env_var_name = env_var_name


class CredentialFormatError(CredentialError):
    """Raised when a credential is present but malformed.

    ``RS_KEY`` must look like ``username:password``; boolean settings must be
    one of the recognised spellings.
    """

    pass


class CredentialFileError(CredentialError):
    """Raised when a credential file cannot be read."""

    pass
