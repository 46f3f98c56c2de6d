"""Call result and exception types."""

from __future__ import annotations

import json as json_module
from typing import Any, NamedTuple


class FetchError(Exception):
    """Base exception for request execution errors."""
    pass


class InvalidURLError(FetchError):
    """Target URL is malformed or not http(s). Never retried."""

    def __init__(self, url: str, reason: str | None = None):
        message = f"Invalid URL: {url!r}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)
        self.url = url


class InvalidHeaderError(FetchError):
    """Header cannot be sent as given. Never retried."""

    def __init__(self, name: str, reason: str | None = None):
        message = f"Invalid header: {name!r}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)
        self.name = name


class TransportError(FetchError):
    """Connection-level failure (connect, read, proxy, TLS, ...).

    Attributes:
        original_error: The exception raised by the transport.
        attempts: Number of attempts made before giving up.
    """

    def __init__(
        self,
        message: str,
        original_error: BaseException | None = None,
        attempts: int = 1,
    ):
        super().__init__(message)
        self.original_error = original_error
        self.attempts = attempts


class TransientNetworkError(TransportError):
    """Retryable failure that persisted through every attempt."""

    def __init__(self, url: str, attempts: int, original_error: BaseException | None = None):
        message = f"Max attempts ({attempts}) exceeded for {url}"
        if original_error is not None:
            message += f": {original_error}"
        super().__init__(message, original_error=original_error, attempts=attempts)
        self.url = url


class NoResponseError(TransportError):
    """Transport returned neither a response nor an error."""

    def __init__(self, url: str):
        super().__init__(f"No response received from {url}")
        self.url = url


class RequestCancelled(FetchError):
    """Cancellation was signalled while waiting to retry."""

    def __init__(self, url: str, attempts: int, last_error: BaseException | None = None):
        super().__init__(f"Request to {url} cancelled after {attempts} attempt(s)")
        self.url = url
        self.attempts = attempts
        self.last_error = last_error


class DecodeError(FetchError):
    """Response body could not be decompressed."""

    def __init__(self, message: str, original_error: Exception | None = None):
        super().__init__(message)
        self.original_error = original_error


class SerializationError(FetchError):
    """Request payload could not be serialized. Nothing was sent."""

    def __init__(self, message: str, original_error: Exception | None = None):
        super().__init__(message)
        self.original_error = original_error


class FetchResult(NamedTuple):
    """Outcome of one logical call.

    Unpacks as ``status, body, err = client.get(url)``.

    Attributes:
        status_code: HTTP status, or 0 when no response was received.
        content: Decoded response body (possibly replaced by a hook).
        error: Terminal error (possibly replaced by a hook), or None.
    """

    status_code: int
    content: bytes | None
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        """True when there is no error and the status is 2xx."""
        return self.error is None and 200 <= self.status_code < 300

    @property
    def text(self) -> str:
        """Decode content as UTF-8 text."""
        if self.content is None:
            return ""
        return self.content.decode("utf-8", errors="replace")

    def json(self) -> Any:
        """Parse content as JSON."""
        return json_module.loads(self.content or b"")

    def raise_for_error(self) -> None:
        """Raise the terminal error, if any."""
        if self.error is not None:
            raise self.error
