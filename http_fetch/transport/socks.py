"""SOCKS5 transport with a lazily built, reused dialer."""

from __future__ import annotations

import threading

import httpx
import structlog

from .._redact import mask_credentials
from .base import DelegatingTransport, build_http_transport

logger = structlog.get_logger()


class Socks5Transport(DelegatingTransport):
    """Routes every request through a SOCKS5 proxy at ``host:port``.

    The SOCKS5-backed transport is built on the first request, not at
    construction, and reused by every request after that. If building it
    fails, that request fails with ``httpx.ConnectError`` and the next
    request tries again.
    """

    kind = "socks5"

    def __init__(self, address: str) -> None:
        super().__init__(f"socks5://{address}")
        self._address = address
        self._lock = threading.Lock()

    @property
    def address(self) -> str:
        """SOCKS5 server as ``host:port``."""
        return self._address

    @property
    def dialer_ready(self) -> bool:
        """Whether the dialer has been built."""
        return self._inner is not None

    def _inner_transport(self, request: httpx.Request) -> httpx.BaseTransport:
        with self._lock:
            if self._inner is None:
                try:
                    self._inner = build_http_transport(self._proxy_url)
                except (ImportError, ValueError, httpx.InvalidURL) as exc:
                    raise httpx.ConnectError(
                        f"SOCKS5 dialer for {mask_credentials(self._address)} "
                        f"unavailable: {exc}",
                        request=request,
                    ) from exc
                logger.debug(
                    "socks5_dialer_created",
                    component="transport",
                    proxy=mask_credentials(self._proxy_url),
                )
            return self._inner
