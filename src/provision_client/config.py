"""Session settings resolved from the environment.

Recognised variables:

``RS_ENDPOINT``
    Server URL, default ``https://127.0.0.1:8092``.
``RS_TOKEN``
    Pre-obtained bearer token. Takes precedence over username/password.
``RS_TOKEN_FILE``
    File holding the token, read when ``RS_TOKEN`` is not set.
``RS_KEY``
    ``username:password``. ``RS_USERNAME``/``RS_PASSWORD`` are used when it
    is not set.
``RS_VERIFY_TLS``
    Verify the server certificate, default false.
``RS_TRACE``, ``RS_TRACE_TOKEN``
    Default server-side trace level and trace token.
"""

from dataclasses import dataclass, field

from provision_client.auth.credentials import CredentialResolver
from provision_client.auth.token import RENEW_INTERVAL, TOKEN_TTL
from provision_client.transport.factory import DEFAULT_CONNECT_TIMEOUT

DEFAULT_ENDPOINT = "https://127.0.0.1:8092"


@dataclass
class ClientConfig:
    """Everything needed to open a :class:`~provision_client.session.Session`."""

    endpoint: str = DEFAULT_ENDPOINT
    username: str | None = None
    password: str | None = field(default=None, repr=False)
    token: str | None = field(default=None, repr=False)
    verify_tls: bool = False
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    read_timeout: float | None = None
    token_ttl: float = TOKEN_TTL
    renew_interval: float = RENEW_INTERVAL
    trace_level: str = ""
    trace_token: str = ""

    @property
    def uses_token(self) -> bool:
        return bool(self.token)

    @classmethod
    def from_env(cls, resolver: CredentialResolver | None = None, **overrides) -> "ClientConfig":
        """Resolve a config from the environment and ``.env``.

        Keyword overrides win over anything found in the environment.
        """
        resolver = resolver or CredentialResolver()
        endpoint = resolver.resolve(
            value=overrides.pop("endpoint", None),
            env_var_name="RS_ENDPOINT",
            default=DEFAULT_ENDPOINT,
            secret=False,
        )
        token = resolver.resolve(value=overrides.pop("token", None), env_var_name="RS_TOKEN")
        token_file = overrides.pop("token_file", None)
        if token is None:
            token = resolver.resolve_from_file(file_path=token_file, env_var_name="RS_TOKEN_FILE")

        username = overrides.pop("username", None)
        password = overrides.pop("password", None)
        if username is None:
            key = resolver.resolve_key(env_var_name="RS_KEY")
            if key is not None:
                username, password = key
            else:
                username = resolver.resolve(env_var_name="RS_USERNAME", secret=False)
                password = resolver.resolve(env_var_name="RS_PASSWORD")

        verify_tls = resolver.resolve_bool(value=overrides.pop("verify_tls", None), env_var_name="RS_VERIFY_TLS")
        trace_level = resolver.resolve(
            value=overrides.pop("trace_level", None), env_var_name="RS_TRACE", default="", secret=False
        )
        trace_token = resolver.resolve(
            value=overrides.pop("trace_token", None), env_var_name="RS_TRACE_TOKEN", default=""
        )

        return cls(
            endpoint=endpoint,
            username=username,
            password=password,
            token=token,
            verify_tls=verify_tls,
            trace_level=trace_level,
            trace_token=trace_token,
            **overrides,
        )
