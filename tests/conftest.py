"""Shared test fixtures and configuration."""

import time
from http.cookiejar import Cookie
from typing import Callable, Generator
from unittest.mock import MagicMock, patch

import httpx
import pytest

from http_fetch import CookieStore, FetchClient


# ============== Response Fixtures ==============

@pytest.fixture
def respond() -> Callable[..., httpx.Response]:
    """Factory for streamed responses, as a real transport returns them."""

    def _respond(
        status_code: int = 200,
        content: bytes = b"",
        headers: dict | list | None = None,
    ) -> httpx.Response:
        return httpx.Response(
            status_code,
            headers=headers,
            stream=httpx.ByteStream(content),
        )

    return _respond


class SlowStream(httpx.SyncByteStream):
    """Body that yields its chunks with a pause before each."""

    def __init__(self, chunks: list[bytes], delay: float) -> None:
        self._chunks = chunks
        self._delay = delay

    def __iter__(self):
        for chunk in self._chunks:
            time.sleep(self._delay)
            yield chunk


@pytest.fixture
def slow_respond() -> Callable[..., httpx.Response]:
    """Factory for responses whose body trickles in."""

    def _slow_respond(chunks: list[bytes], delay: float, status_code: int = 200) -> httpx.Response:
        return httpx.Response(status_code, stream=SlowStream(chunks, delay))

    return _slow_respond


# ============== Client Fixtures) ==============

@pytest.fixture
def make_client() -> Generator[Callable[..., FetchClient], None, None]:
    """Factory for clients sending through an ``httpx.MockTransport``."""
    clients: list[FetchClient] = []

    def _make_client(handler: Callable[[httpx.Request], httpx.Response], **kwargs) -> FetchClient:
        client = FetchClient(transport=httpx.MockTransport(handler), **kwargs)
        clients.append(client)
        return client

    yield _make_client

    for client in clients:
        client.close()


@pytest.fixture
def no_sleep() -> Generator[MagicMock, None, None]:
    """Patch out backoff sleeps, recording the requested delays."""
    with patch("http_fetch.engine.time.sleep") as sleep:
        yield sleep


# ============== Cookie Fixtures ==============

@pytest.fixture
def make_cookie() -> Callable[..., Cookie]:
    """Factory for ``http.cookiejar.Cookie`` objects."""

    def _make_cookie(
        name: str,
        value: str,
        domain: str = "example.com",
        path: str = "/",
        secure: bool = False,
        expires: int | None = None,
    ) -> Cookie:
        return Cookie(
            version=0,
            name=name,
            value=value,
            port=None,
            port_specified=False,
            domain=domain,
            domain_specified=False,
            domain_initial_dot=False,
            path=path,
            path_specified=True,
            secure=secure,
            expires=expires,
            discard=expires is None,
            comment=None,
            comment_url=None,
            rest={},
        )

    return _make_cookie


@pytest.fixture
def cookie_store() -> CookieStore:
    """Empty cookie store."""
    return CookieStore()


@pytest.fixture
def populated_cookie_store(make_cookie) -> CookieStore:
    """Cookie store with test cookies."""
    store = CookieStore()
    store.set_cookies(
        "https://example.com/login",
        [
            make_cookie("session_id", "abc123"),
            make_cookie("user_token", "xyz789", path="/api"),
            make_cookie("secure_only", "s3", secure=True),
            make_cookie("stale", "old", expires=int(time.time()) - 3600),
        ],
    )
    store.set_cookies("https://other.com/", [make_cookie("other_cookie", "value", domain="other.com")])
    return store


# ============== URL Fixtures ==============

@pytest.fixture
def test_urls() -> list[str]:
    """List of test URLs."""
    return [
        "https://example.com/page1",
        "https://example.com/page2",
        "https://example.com/page3",
        "https://other.com/page1",
        "https://other.com/page2",
    ]
