"""Base transport: one connection per request, no certificate checks."""

from __future__ import annotations

from abc import ABC, abstractmethod

import httpx

# No idle connections are kept, so every request opens its own connection.
NO_KEEPALIVE = httpx.Limits(max_keepalive_connections=0)


def build_http_transport(proxy: str | None = None) -> httpx.HTTPTransport:
    """Create the httpx transport every selector variant sends through.

    Certificate verification is off, so hosts with self-signed or expired
    certificates are still reached. Do not use this transport where the
    peer's identity matters.

    Args:
        proxy: Proxy URL (``http://`` or ``socks5://``), or None.
    """
    return httpx.HTTPTransport(
        proxy=proxy,
        verify=False,
        limits=NO_KEEPALIVE,
        trust_env=False,
    )


class DelegatingTransport(httpx.BaseTransport, ABC):
    """httpx transport forwarding to an inner ``HTTPTransport``.

    Subclasses decide how and when the inner transport is built.
    """

    kind: str = "direct"

    def __init__(self, proxy_url: str | None = None) -> None:
        self._proxy_url = proxy_url
        self._inner: httpx.BaseTransport | None = None
        self._closed = False

    @property
    def proxy_url(self) -> str | None:
        """Proxy this transport routes through, if any."""
        return self._proxy_url

    @property
    def is_closed(self) -> bool:
        """Check if transport has been closed."""
        return self._closed

    @abstractmethod
    def _inner_transport(self, request: httpx.Request) -> httpx.BaseTransport:
        """Return the transport that sends ``request``."""
        raise NotImplementedError

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        if self._closed:
            raise httpx.ConnectError("Transport is closed", request=request)
        return self._inner_transport(request).handle_request(request)

    def close(self) -> None:
        """Close the inner transport."""
        if self._inner is not None:
            self._inner.close()
            self._inner = None
        self._closed = True

    def __repr__(self) -> str:
        return f"<{type(self).__name__} kind={self.kind!r}>"


class DirectTransport(DelegatingTransport):
    """Connects straight to the target host."""

    kind = "direct"

    def __init__(self) -> None:
        super().__init__()
        self._inner = build_http_transport()

    def _inner_transport(self, request: httpx.Request) -> httpx.BaseTransport:
        return self._inner


class HTTPProxyTransport(DelegatingTransport):
    """Routes every request through an HTTP proxy."""

    kind = "http"

    def __init__(self, proxy_url: str) -> None:
        super().__init__(proxy_url)
        self._inner = build_http_transport(proxy_url)

    def _inner_transport(self, request: httpx.Request) -> httpx.BaseTransport:
        return self._inner
