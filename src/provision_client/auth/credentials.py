"""Credential resolution for provisioning sessions.

Endpoint, token and username/password can come from several places. The
resolver checks, in order:

1. Explicitly provided value
2. Environment variable (``RS_ENDPOINT``, ``RS_TOKEN``, ``RS_KEY``, ...)
3. ``.env`` file (loaded into the environment by python-dotenv)
4. Default value

Example:
    ```python
    from provision_client.auth import CredentialResolver

    resolver = CredentialResolver()
    endpoint = resolver.resolve(env_var_name="RS_ENDPOINT", default="https://127.0.0.1:8092")
    username, password = resolver.resolve_key(env_var_name="RS_KEY")
    verify = resolver.resolve_bool(env_var_name="RS_VERIFY_TLS", default=False)
    ```

Credentials are never logged; only the source they came from is.
"""

import logging
import os
from pathlib import Path
from threading import Lock

from dotenv import load_dotenv

from provision_client.auth.exceptions import (
    CredentialFileError,
    CredentialFormatError,
    CredentialNotFoundError,
)

logger = logging.getLogger(__name__)

_TRUE_VALUES = frozenset(["1", "true", "yes", "on"])
_FALSE_VALUES = frozenset(["0", "false", "no", "off", ""])


class CredentialResolver:
    """Resolve session settings from explicit values, environment and ``.env``.

    Args:
        dotenv_path: Path to a ``.env`` file. If None, python-dotenv searches
            parent directories.
        load_dotenv: Whether to load the ``.env`` file at all.
    """

    def __init__(self, dotenv_path: str | None = None, load_dotenv: bool = True):
        self._dotenv_loaded = False
        self._dotenv_lock = Lock()
        self._dotenv_path = dotenv_path
        self._load_dotenv_enabled = load_dotenv

        if self._load_dotenv_enabled:
            self._ensure_dotenv_loaded()

    def _ensure_dotenv_loaded(self) -> None:
        """Load the ``.env`` file once, even with concurrent callers."""
        if self._dotenv_loaded:
            return

        with self._dotenv_lock:
            if self._dotenv_loaded:
                return

            try:
                load_dotenv(dotenv_path=self._dotenv_path)
                logger.debug("Loaded .env file for session settings")
            except OSError as e:
                logger.warning(f"Failed to load .env file: {e}")
            self._dotenv_loaded = True

    def resolve(
        self,
        *,
        value: str | None = None,
        env_var_name: str | None = None,
        default: str | None = None,
        required: bool = False,
        secret: bool = True,
    ) -> str | None:
        """Resolve one setting.

        Args:
            value: Explicit value; wins over every other source.
            env_var_name: Environment variable to consult.
            default: Fallback when nothing else is set.
            required: Raise instead of returning None.
            secret: Mask the value in debug logs.

        Returns:
            The resolved value, or None.

        Raises:
            CredentialNotFoundError: If ``required`` and nothing was found.
        """
        result = None
        source = None

        if value is not None:
            result = value
            source = "explicit parameter"
        elif env_var_name and env_var_name in os.environ:
            result = os.environ[env_var_name]
            source = f"environment variable '{env_var_name}'"
        elif default is not None:
            result = default
            source = "default value"

        if result is not None:
            shown = "***" if secret else result
            logger.debug(f"Resolved setting from {source}: {shown}")

        if required and result is None:
            error_msg = "Required credential not found"
            if env_var_name:
                error_msg += f" (checked env var: {env_var_name})"
            raise CredentialNotFoundError(error_msg, env_var_name=env_var_name)

        return result

    def resolve_bool(
        self,
        *,
        value: bool | None = None,
        env_var_name: str | None = None,
        default: bool = False,
    ) -> bool:
        """Resolve a boolean setting such as ``RS_VERIFY_TLS``.

        Raises:
            CredentialFormatError: If the variable holds an unrecognised value.
        """
        if value is not None:
            return value
        raw = self.resolve(env_var_name=env_var_name, secret=False)
        if raw is None:
            return default
        lowered = raw.strip().lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
        raise CredentialFormatError(f"{env_var_name}={raw!r} is not a boolean")

    def resolve_key(
        self,
        *,
        value: str | None = None,
        env_var_name: str | None = "RS_KEY",
    ) -> tuple[str, str] | None:
        """Resolve a ``username:password`` pair.

        The password may itself contain colons; only the first one splits.

        Returns:
            ``(username, password)`` or None when no key is configured.

        Raises:
            CredentialFormatError: If the key has no colon or no username.
        """
        raw = self.resolve(value=value, env_var_name=env_var_name)
        if raw is None:
            return None
        username, sep, password = raw.partition(":")
        if not sep or not username:
            raise CredentialFormatError(f"{env_var_name or 'key'} must be in the form username:password")
        return username, password

    def resolve_from_file(
        self,
        *,
        file_path: str | Path | None = None,
        env_var_name: str | None = None,
        required: bool = False,
    ) -> str | None:
        """Read a credential, typically a token, from a file.

        ``~`` and ``$VAR`` are expanded. The path can also come from the
        environment variable named by ``env_var_name``.

        Returns:
            File contents stripped of surrounding whitespace, or None.

        Raises:
            CredentialFileError: If ``required`` and the file cannot be read.
        """
        path_to_use = None
        if file_path is not None:
            path_to_use = str(file_path)
        elif env_var_name:
            path_to_use = self.resolve(env_var_name=env_var_name, secret=False)

        if path_to_use is None:
            if required:
                error_msg = "No file path provided for credential resolution"
                if env_var_name:
                    error_msg += f" (env var '{env_var_name}' not set)"
                raise CredentialFileError(error_msg)
            return None

        path_obj = Path(os.path.expanduser(os.path.expandvars(path_to_use)))
        try:
            content = path_obj.read_text().strip()
        except OSError as e:
            error_msg = f"Cannot read credential file {path_obj}: {e}"
            if required:
                raise CredentialFileError(error_msg) from e
            logger.warning(error_msg)
            return None

        logger.debug(f"Resolved credential from file: {path_obj} (***)")
        return content
