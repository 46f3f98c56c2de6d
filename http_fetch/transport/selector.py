"""Pick a transport from a proxy spec."""

from __future__ import annotations

from urllib.parse import urlsplit

import structlog

from .._redact import mask_credentials
from .base import DelegatingTransport, DirectTransport, HTTPProxyTransport
from .socks import Socks5Transport

logger = structlog.get_logger()


def socks_address(proxy: str) -> str:
    """Return the ``host:port`` part of a SOCKS5 proxy spec.

    Accepts both ``socks5://host:port`` and a bare ``host:port``.
    """
    if "://" in proxy:
        return urlsplit(proxy).netloc
    return proxy


def configure_transport(proxy: str | None = None) -> DelegatingTransport:
    """Build the transport for a proxy spec.

    Args:
        proxy: ``http://host:port`` for an HTTP proxy. Any other value is a
               SOCKS5 server, ``host:port`` or ``<scheme>://host:port``.
               None or empty connects directly.

    Returns:
        A transport with keep-alive and certificate verification disabled.
    """
    if not proxy:
        transport: DelegatingTransport = DirectTransport()
    elif "://" in proxy and urlsplit(proxy).scheme.lower() == "http":
        transport = HTTPProxyTransport(proxy)
    else:
        transport = Socks5Transport(socks_address(proxy))

    logger.debug(
        "transport_configured",
        component="transport",
        kind=transport.kind,
        proxy=mask_credentials(proxy),
    )
    return transport
