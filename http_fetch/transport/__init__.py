"""Transport layer implementations."""

from .base import DelegatingTransport, DirectTransport, HTTPProxyTransport
from .selector import configure_transport
from .socks import Socks5Transport

__all__ = [
    "DelegatingTransport",
    "DirectTransport",
    "HTTPProxyTransport",
    "Socks5Transport",
    "configure_transport",
]
