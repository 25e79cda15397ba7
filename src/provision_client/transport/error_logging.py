"""Logging transport wrapper.

Wraps another ``httpx.BaseTransport`` and logs every round trip. Transport
failures are logged and re-raised unchanged; nothing is retried.

Example:
    ```python
    import httpx

    from provision_client.transport.error_logging import LoggingTransport

    transport = LoggingTransport(wrapped_transport=httpx.HTTPTransport(verify=False))

    with httpx.Client(transport=transport) as client:
        response = client.get("https://127.0.0.1:8092/api/v3/info")
    ```
"""

import logging
import time

import httpx

logger = logging.getLogger(__name__)


class LoggingTransport(httpx.BaseTransport):
    """Transport that logs requests, responses and transport errors.

    Args:
        wrapped_transport: The underlying transport to wrap
    """

    def __init__(self, *, wrapped_transport: httpx.BaseTransport) -> None:
        self._wrapped_transport = wrapped_transport

    def __enter__(self):
        """Enter context, delegating to wrapped transport."""
        self._wrapped_transport.__enter__()
        return self

    def __exit__(self, exc_type=None, exc_val=None, exc_tb=None):
        """Exit context, delegating to wrapped transport."""
        return self._wrapped_transport.__exit__(exc_type, exc_val, exc_tb)

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        """Send the request through the wrapped transport, logging the outcome.

        Args:
            request: The HTTP request to send

        Returns:
            HTTP response from the wrapped transport
        """
        started = time.monotonic()
        try:
            response = self._wrapped_transport.handle_request(request)
        except Exception as e:
            elapsed = time.monotonic() - started
            logger.warning(f"Request {request.method} {request.url} failed after {elapsed:.3f}s: {e}")
            raise

        elapsed = time.monotonic() - started
        logger.debug(f"Request {request.method} {request.url} -> {response.status_code} in {elapsed:.3f}s")
        return response

    def close(self) -> None:
        self._wrapped_transport.close()
