"""Transport layer for the provisioning client.

The session sends every request through a pooled ``httpx.Client`` whose
transport is wrapped for logging. Nothing is retried; failures reach the caller.

Modules:
    error_logging: Logging transport wrapper
    factory: Builds the configured ``httpx.Client``

Example:
    ```python
    from provision_client.transport import create_http_client

    client = create_http_client(verify=False)
    ```
"""

from provision_client.transport.error_logging import LoggingTransport
from provision_client.transport.factory import create_http_client

__all__ = ["LoggingTransport", "create_http_client"]
