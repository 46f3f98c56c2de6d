"""One-shot helpers.

Each helper builds a throwaway ``FetchClient``, makes a single call and
closes it. Use a ``FetchClient`` directly to keep cookies between calls.
"""

from __future__ import annotations

from typing import Any, Mapping

from .client import FetchClient
from .models import FetchResult
from .options import CallOption


def _client(
    proxy: str | None,
    timeout: float | None,
    headers: Mapping[str, str] | None,
) -> FetchClient:
    overrides: dict[str, Any] = {"proxy": proxy}
    if timeout is not None:
        overrides["timeout"] = timeout
    if headers:
        overrides["headers"] = dict(headers)
    return FetchClient(**overrides)


def get(
    url: str,
    *options: CallOption,
    proxy: str | None = None,
    timeout: float | None = None,
    headers: Mapping[str, str] | None = None,
) -> FetchResult:
    """GET ``url`` with a fresh client."""
    with _client(proxy, timeout, headers) as client:
        return client.get(url, *options)


def delete(
    url: str,
    *options: CallOption,
    proxy: str | None = None,
    timeout: float | None = None,
    headers: Mapping[str, str] | None = None,
) -> FetchResult:
    """DELETE ``url`` with a fresh client."""
    with _client(proxy, timeout, headers) as client:
        return client.delete(url, *options)


def post(
    url: str,
    form: Mapping[str, str] | None = None,
    *options: CallOption,
    proxy: str | None = None,
    timeout: float | None = None,
    headers: Mapping[str, str] | None = None,
) -> FetchResult:
    """POST a form to ``url`` with a fresh client."""
    with _client(proxy, timeout, headers) as client:
        return client.post(url, form, *options)


def payload(
    url: str,
    data: Any = None,
    *options: CallOption,
    proxy: str | None = None,
    timeout: float | None = None,
    headers: Mapping[str, str] | None = None,
) -> FetchResult:
    """POST ``data`` as JSON to ``url`` with a fresh client."""
    with _client(proxy, timeout, headers) as client:
        return client.payload(url, data, *options)
