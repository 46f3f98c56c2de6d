"""Resilient HTTP request execution.

This package provides an HTTP client for scraping and ingestion with:

- Direct, HTTP-proxy and SOCKS5-proxy transports
- Retry of transient network failures with exponential backoff
- Request hooks (signing) and response hooks (transforms)
- Transparent gzip decoding
- A cookie store that can export every cookie it has seen

Basic usage:

    from http_fetch import FetchClient, Headers, NoCookie

    client = FetchClient(proxy="http://127.0.0.1:8080")
    status, body, err = client.get("https://example.com")

    # JSON payload, cookies isolated for this call only
    result = client.payload("https://example.com/api", {"user": "admin"}, NoCookie())
    result.raise_for_error()

    # Everything the server set, keyed by URL
    client.export_cookies()

    # One-shot helpers
    from http_fetch import api
    status, body, err = api.get("https://example.com", proxy="socks5://127.0.0.1:1080")
"""

from . import api
from .client import FetchClient
from .config import DEFAULT_CONFIG, DEFAULT_TIMEOUT, DEFAULT_USER_AGENT, ClientConfig
from .hooks import HookChain, OutgoingRequest, RequestHook, ResponseHook
from .models import (
    DecodeError,
    FetchError,
    FetchResult,
    InvalidHeaderError,
    InvalidURLError,
    NoResponseError,
    RequestCancelled,
    SerializationError,
    TransientNetworkError,
    TransportError,
)
from .options import (
    BasicAuth,
    CallOption,
    CancelOn,
    Headers,
    NoCookie,
    QueryParams,
    RequestHookOption,
    ResponseHookOption,
)
from .retry import RetryPolicy, should_retry
from .safety import CookieStore
from .transport import configure_transport

__version__ = "0.1.0"

__all__ = [
    # Main client
    "FetchClient",
    "api",
    # Configuration
    "ClientConfig",
    "DEFAULT_CONFIG",
    "DEFAULT_TIMEOUT",
    "DEFAULT_USER_AGENT",
    # Results and exceptions
    "FetchResult",
    "FetchError",
    "InvalidURLError",
    "InvalidHeaderError",
    "TransportError",
    "TransientNetworkError",
    "NoResponseError",
    "RequestCancelled",
    "DecodeError",
    "SerializationError",
    # Call options
    "CallOption",
    "QueryParams",
    "Headers",
    "RequestHookOption",
    "ResponseHookOption",
    "NoCookie",
    "BasicAuth",
    "CancelOn",
    # Hooks
    "OutgoingRequest",
    "RequestHook",
    "ResponseHook",
    "HookChain",
    # Retry
    "RetryPolicy",
    "should_retry",
    # Cookies and transport
    "CookieStore",
    "configure_transport",
    # Version
    "__version__",
]
