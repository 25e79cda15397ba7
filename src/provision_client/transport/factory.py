"""Build the pooled HTTP client a session talks through."""

import httpx

from provision_client.transport.error_logging import LoggingTransport

# Connection establishment, TLS handshake included.
DEFAULT_CONNECT_TIMEOUT = 30.0
# Waiting for a free connection from the pool.
DEFAULT_POOL_TIMEOUT = 10.0
# Idle connections are evicted after this many seconds.
DEFAULT_KEEPALIVE_EXPIRY = 90.0
DEFAULT_MAX_KEEPALIVE = 100


def create_http_client(
    *,
    verify: bool = False,
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
    read_timeout: float | None = None,
    transport: httpx.BaseTransport | None = None,
) -> httpx.Client:
    """Create the ``httpx.Client`` a session sends its requests through.

    Certificate verification is off by default, matching how lab servers are
    usually deployed with self-signed certificates.

    Args:
        verify: Verify the server's TLS certificate.
        connect_timeout: Seconds allowed for connecting (including TLS).
        read_timeout: Seconds allowed between received bytes; None waits
            forever, which suits long blob transfers.
        transport: Transport to wrap instead of a real HTTP transport. Tests
            pass ``httpx.MockTransport`` here.

    Returns:
        Configured client. The caller owns it and must close it.
    """
    limits = httpx.Limits(
        max_keepalive_connections=DEFAULT_MAX_KEEPALIVE,
        keepalive_expiry=DEFAULT_KEEPALIVE_EXPIRY,
    )
    timeout = httpx.Timeout(
        connect=connect_timeout,
        read=read_timeout,
        write=read_timeout,
        pool=DEFAULT_POOL_TIMEOUT,
    )
    if transport is None:
        transport = httpx.HTTPTransport(verify=verify, limits=limits)
    return httpx.Client(
        transport=LoggingTransport(wrapped_transport=transport),
        timeout=timeout,
    )
