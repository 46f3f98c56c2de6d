"""Long-lived HTTP client with retries, hooks and a shared cookie store.

Basic usage:

    from http_fetch import FetchClient, Headers, QueryParams

    client = FetchClient(proxy="socks5://127.0.0.1:1080", timeout=20)
    status, body, err = client.get(
        "https://example.com/search",
        QueryParams({"q": "python"}),
        Headers({"Referer": "https://example.com/"}),
    )

    # Legacy option map
    client = FetchClient.from_options({"userAgent": "bot/1.0", "proxy": "http://127.0.0.1:8080"})
"""

from __future__ import annotations

import dataclasses
import json
import threading
from typing import Any, Mapping
from urllib.parse import urlencode

import httpx
import structlog

from .config import DEFAULT_CONFIG, ClientConfig
from .engine import DiscardingJar, Executor, PreparedCall, finish
from .hooks import HookChain, OutgoingRequest, ResponseHook
from .models import (
    FetchError,
    FetchResult,
    InvalidHeaderError,
    InvalidURLError,
    SerializationError,
)
from .options import BasicAuth, CallOption, CallOptions
from .retry import RetryPolicy
from .safety import CookieStore, RWLock
from .transport import configure_transport

logger = structlog.get_logger()

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
JSON_CONTENT_TYPE = "application/json; charset=utf-8"

# Sent on every request unless a caller header overrides it.
SESSION_HEADERS = {
    "Connection": "close",
    "Accept-Encoding": "gzip",
}


def encode_json_payload(data: Any) -> bytes:
    """Serialize a JSON payload.

    ``str`` and ``bytes`` are sent verbatim, None sends an empty body, and
    anything else goes through ``json.dumps``.

    Raises:
        SerializationError: If ``data`` is not JSON-serializable.
    """
    if data is None:
        return b""
    if isinstance(data, (bytes, bytearray, memoryview)):
        return bytes(data)
    if isinstance(data, str):
        return data.encode("utf-8")
    try:
        return json.dumps(data, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
    except (TypeError, ValueError) as exc:
        raise SerializationError(
            f"Cannot serialize payload of type {type(data).__name__}: {exc}",
            original_error=exc,
        ) from exc


class FetchClient:
    """HTTP client with retries, hooks and cookie tracking.

    One instance may serve many threads at once. Base headers, the cookie
    store and the last-response headers sit behind a reader/writer lock; the
    underlying ``httpx.Client`` is built on first use and rebuilt when the
    transport changes.

    Args:
        config: Defaults record. ``DEFAULT_CONFIG`` when omitted.
        transport: Transport to send through instead of the one selected
                   from ``config.proxy``.
        **overrides: ``ClientConfig`` fields overriding ``config``.
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        *,
        transport: httpx.BaseTransport | None = None,
        **overrides: Any,
    ) -> None:
        config = config or DEFAULT_CONFIG
        if overrides:
            config = dataclasses.replace(config, **overrides)
        self._config = config

        # Mutable state guarded by _state_lock
        self._state_lock = RWLock()
        self._headers: dict[str, str] = dict(config.headers)
        self._user_agent = config.user_agent
        self._timeout = config.timeout
        self._cookies_enabled = config.cookies_enabled
        self._response_hook: ResponseHook | None = None
        self._basic_auth: BasicAuth | None = None
        self._last_headers: httpx.Headers | None = None

        self._cookie_store = CookieStore()

        # Transport and session guarded by _session_lock
        self._session_lock = threading.Lock()
        self._proxy = config.proxy
        self._transport: httpx.BaseTransport = transport or configure_transport(config.proxy)
        self._session: httpx.Client | None = None
        self._closed = False

        self._executor = Executor(
            self._get_session,
            RetryPolicy(config.max_attempts, config.backoff_base),
            max_redirects=config.max_redirects,
            on_response=self._capture_headers,
        )

    @classmethod
    def from_options(
        cls,
        options: Mapping[str, Any] | None = None,
        **kwargs: Any,
    ) -> "FetchClient":
        """Create a client from a legacy option map.

        See ``ClientConfig.from_options`` for the recognised keys.
        """
        return cls(ClientConfig.from_options(options), **kwargs)

    @property
    def config(self) -> ClientConfig:
        """The defaults record the client was built from."""
        return self._config

    # -------------------------------------------------------------------------
    # HTTP Methods
    # -------------------------------------------------------------------------

    def get(self, url: str, *options: CallOption) -> FetchResult:
        """Make a GET request. ``QueryParams`` go into the URL."""
        return self.request("GET", url, *options)

    def delete(self, url: str, *options: CallOption) -> FetchResult:
        """Make a DELETE request. ``QueryParams`` go into the URL."""
        return self.request("DELETE", url, *options)

    def post(
        self,
        url: str,
        form: Mapping[str, str] | None = None,
        *options: CallOption,
    ) -> FetchResult:
        """POST ``form`` as ``application/x-www-form-urlencoded``."""
        content = urlencode(sorted((form or {}).items())).encode("ascii")
        return self.request(
            "POST", url, *options, content=content, content_type=FORM_CONTENT_TYPE
        )

    def payload(self, url: str, data: Any = None, *options: CallOption) -> FetchResult:
        """POST ``data`` as JSON.

        A payload that cannot be serialized is not sent; the call ends with
        a ``SerializationError`` passed through the response hooks.
        """
        opts = CallOptions.parse(options)
        try:
            content = encode_json_payload(data)
        except SerializationError as exc:
            logger.warning("payload_serialization_failed", component="client", error=str(exc))
            return finish(self._hook_chain(opts), 0, None, exc)
        return self._call("POST", url, opts, content, JSON_CONTENT_TYPE)

    def request(
        self,
        method: str,
        url: str,
        *options: CallOption,
        content: bytes | None = None,
        content_type: str | None = None,
    ) -> FetchResult:
        """Execute a request.

        Args:
            method: HTTP method.
            url: Absolute http(s) URL.
            *options: Call options (``QueryParams``, ``Headers``, hooks, ...).
            content: Request body, buffered and replayed on retry.
            content_type: ``Content-Type`` for ``content``.

        Returns:
            ``FetchResult(status_code, content, error)`` after the response
            hook chain.

        Raises:
            FetchError: If the client is closed.
            TypeError: On an unsupported call option.
        """
        return self._call(method, url, CallOptions.parse(options), content, content_type)

    # -------------------------------------------------------------------------
    # Header Management
    # -------------------------------------------------------------------------

    def set_headers(self, headers: Mapping[str, str]) -> None:
        """Merge ``headers`` into the base headers of every request."""
        with self._state_lock.write_lock():
            self._headers.update(headers)

    def get_headers(self) -> dict[str, str]:
        """Return a copy of the base headers."""
        with self._state_lock.read_lock():
            return dict(self._headers)

    def set_user_agent(self, user_agent: str) -> None:
        """Set the User-Agent sent with every request."""
        with self._state_lock.write_lock():
            self._user_agent = user_agent

    @property
    def user_agent(self) -> str:
        with self._state_lock.read_lock():
            return self._user_agent

    @property
    def last_headers(self) -> httpx.Headers | None:
        """Headers of the most recent response, or None before any."""
        with self._state_lock.read_lock():
            if self._last_headers is None:
                return None
            return httpx.Headers(self._last_headers)

    # -------------------------------------------------------------------------
    # Behaviour
    # -------------------------------------------------------------------------

    def set_timeout(self, timeout: float) -> None:
        """Set the per-attempt timeout in seconds."""
        if timeout <= 0:
            raise ValueError("timeout must be > 0")
        with self._state_lock.write_lock():
            self._timeout = timeout

    @property
    def timeout(self) -> float:
        with self._state_lock.read_lock():
            return self._timeout

    def set_response_hook(self, hook: ResponseHook | None) -> None:
        """Set the client-wide hook run after every call-scoped one."""
        with self._state_lock.write_lock():
            self._response_hook = hook

    def set_cookies_enabled(self, enabled: bool) -> None:
        """Turn cookie sending and recording on or off."""
        with self._state_lock.write_lock():
            self._cookies_enabled = enabled

    def set_basic_auth(self, username: str, password: str) -> None:
        """Send basic credentials with the next call only.

        The credentials are taken by the next call that gets past URL
        validation and then forgotten. Concurrent calls race for them; use a
        per-call ``BasicAuth`` option when calls need different credentials.
        """
        with self._state_lock.write_lock():
            if username and password:
                self._basic_auth = BasicAuth(username, password)
            else:
                self._basic_auth = None

    # -------------------------------------------------------------------------
    # Proxy / Transport
    # -------------------------------------------------------------------------

    def set_proxy(self, proxy: str | None) -> None:
        """Route later calls through ``proxy`` (None connects directly).

        Safe between calls. A call already in flight finishes its current
        attempt on the previous transport.
        """
        self.set_transport(configure_transport(proxy), proxy=proxy)

    def set_transport(
        self,
        transport: httpx.BaseTransport,
        proxy: str | None = None,
    ) -> None:
        """Replace the transport; the session is rebuilt on next use.

        The previous session is not closed since calls may still be using
        it. With keep-alive disabled it holds no idle connections.
        """
        with self._session_lock:
            self._transport = transport
            self._proxy = proxy or None
            self._session = None

    @property
    def proxy(self) -> str | None:
        """Configured proxy spec."""
        with self._session_lock:
            return self._proxy

    @property
    def transport(self) -> httpx.BaseTransport:
        """Transport the next attempt will use."""
        with self._session_lock:
            return self._transport

    # -------------------------------------------------------------------------
    # Cookies
    # -------------------------------------------------------------------------

    @property
    def cookie_store(self) -> CookieStore:
        """The store shared by calls on this client."""
        return self._cookie_store

    def export_cookies(self) -> dict[str, list]:
        """Copy of every cookie recorded, keyed by the URL that set it."""
        return self._cookie_store.export_all()

    def clear_cookies(self) -> None:
        """Forget every stored cookie."""
        self._cookie_store.clear()

    # -------------------------------------------------------------------------
    # Context Managers / Cleanup
    # -------------------------------------------------------------------------

    def __enter__(self) -> "FetchClient":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def close(self) -> None:
        """Close the session and transport."""
        with self._session_lock:
            if self._closed:
                return
            self._closed = True
            if self._session is not None:
                self._session.close()
                self._session = None
            else:
                self._transport.close()

    # -------------------------------------------------------------------------
    # Internal Methods
    # -------------------------------------------------------------------------

    def _get_session(self) -> httpx.Client:
        """Get or create the ``httpx.Client`` for the current transport."""
        with self._session_lock:
            if self._session is None:
                self._session = httpx.Client(
                    transport=self._transport,
                    cookies=DiscardingJar(),
                    headers=SESSION_HEADERS,
                    follow_redirects=False,
                    trust_env=False,
                )
            return self._session

    def _capture_headers(self, headers: httpx.Headers) -> None:
        with self._state_lock.write_lock():
            self._last_headers = httpx.Headers(headers)

    def _take_basic_auth(self) -> BasicAuth | None:
        with self._state_lock.write_lock():
            auth, self._basic_auth = self._basic_auth, None
        return auth

    def _hook_chain(self, opts: CallOptions) -> HookChain:
        with self._state_lock.read_lock():
            global_hook = self._response_hook
        return HookChain(opts.response_hooks, global_hook)

    def _call(
        self,
        method: str,
        url: str,
        opts: CallOptions,
        content: bytes | None,
        content_type: str | None,
    ) -> FetchResult:
        if self._closed:
            raise FetchError("Client is closed")

        hooks = self._hook_chain(opts)
        try:
            target = self._parse_url(url, opts.params)
        except InvalidURLError as exc:
            logger.warning("invalid_url", component="client", error=str(exc))
            return finish(hooks, 0, None, exc)

        with self._state_lock.read_lock():
            defaults = {"User-Agent": self._user_agent, "Accept-Language": "en"}
            base_headers = dict(self._headers)
            timeout = self._timeout
            cookies_enabled = self._cookies_enabled

        try:
            headers = self._merge_headers(
                defaults,
                {"Content-Type": content_type} if content_type else {},
                base_headers,
                opts.headers,
            )
        except InvalidHeaderError as exc:
            logger.warning("invalid_header", component="client", header=exc.name)
            return finish(hooks, 0, None, exc)

        pending_auth = self._take_basic_auth()

        call = PreparedCall(
            request=OutgoingRequest(method.upper(), target, headers, content),
            timeout=timeout,
            cookie_store=self._select_cookie_store(cookies_enabled, opts.no_cookie),
            request_hook=opts.request_hook,
            hooks=hooks,
            auth=opts.auth or pending_auth,
            cancel=opts.cancel,
        )
        return self._executor.execute(call)

    def _select_cookie_store(self, enabled: bool, isolated: bool) -> CookieStore | None:
        if not enabled:
            return None
        if isolated:
            # Fresh store for this call only; the client's store is untouched.
            return CookieStore()
        return self._cookie_store

    @staticmethod
    def _merge_headers(*layers: Mapping[str, str]) -> httpx.Headers:
        """Merge header layers, later ones winning case-insensitively.

        Raises:
            InvalidHeaderError: If a name or value is not ASCII.
        """
        merged: dict[str, tuple[str, str]] = {}
        for layer in layers:
            for name, value in layer.items():
                merged[name.lower()] = (name, value)
        for name, value in merged.values():
            if not (name.isascii() and value.isascii()):
                raise InvalidHeaderError(name, "names and values must be ASCII")
        return httpx.Headers(list(merged.values()))

    @staticmethod
    def _parse_url(url: str, params: Mapping[str, str]) -> httpx.URL:
        """Parse ``url`` and merge ``params`` into its query.

        Raises:
            InvalidURLError: If ``url`` is malformed or not absolute http(s).
        """
        try:
            parsed = httpx.URL(url)
        except (httpx.InvalidURL, TypeError) as exc:
            raise InvalidURLError(str(url), str(exc)) from exc
        if parsed.scheme not in ("http", "https") or not parsed.host:
            raise InvalidURLError(url, "expected an absolute http(s) URL")
        if params:
            parsed = parsed.copy_merge_params(params)
        return parsed
