"""Transient-failure classification and backoff policy.

Network stacks report the same condition at different layers: as a typed
exception, as an ``OSError`` carrying an errno, or only as text relayed by a
proxy. ``should_retry`` checks all three.
"""

from __future__ import annotations

import errno
import http.client
from dataclasses import dataclass
from typing import Iterator

import httpx

RETRYABLE_ERRNOS = frozenset({errno.ECONNRESET, errno.ECONNABORTED, errno.ECONNREFUSED})

# Typed end-of-stream and connection failures.
RETRYABLE_TYPES: tuple[type[BaseException], ...] = (
    EOFError,
    http.client.IncompleteRead,
    ConnectionResetError,
    ConnectionAbortedError,
    ConnectionRefusedError,
)

TIMEOUT_TYPES: tuple[type[BaseException], ...] = (
    TimeoutError,
    httpx.TimeoutException,
)

RETRY_PATTERNS = (
    "connection refused",
    "bad gateway",
    "stream timeout",
    "connection reset by peer",
    "broken pipe",
    "unexpected eof",
    "upstream connect error or discon",
    "i/o timeout",
    "no such host",
    "tls: handshake failure",
    "use of closed network connection",
    "server misbehaving",
)


def iter_error_chain(err: BaseException) -> Iterator[BaseException]:
    """Yield ``err`` and every error it wraps, each once.

    Follows ``__cause__``, ``__context__`` and the ``original_error``
    attribute carried by this package's own exceptions.
    """
    seen: set[int] = set()
    pending = [err]
    while pending:
        current = pending.pop()
        if id(current) in seen:
            continue
        seen.add(id(current))
        yield current
        for linked in (
            getattr(current, "original_error", None),
            current.__context__,
            current.__cause__,
        ):
            if isinstance(linked, BaseException):
                pending.append(linked)


def should_retry(err: BaseException | None) -> bool:
    """Decide whether a failed attempt is worth repeating.

    Args:
        err: The error raised by the attempt, or None.

    Returns:
        True for transient network conditions, False otherwise.
    """
    if err is None:
        return False

    chain = list(iter_error_chain(err))

    if any(isinstance(e, RETRYABLE_TYPES) for e in chain):
        return True

    if any(isinstance(e, TIMEOUT_TYPES) for e in chain):
        return True

    for e in chain:
        if isinstance(e, OSError) and e.errno in RETRYABLE_ERRNOS:
            return True

    message = str(err).lower()
    return any(pattern in message for pattern in RETRY_PATTERNS)


@dataclass(frozen=True)
class RetryPolicy:
    """Attempt budget and exponential backoff.

    Attributes:
        max_attempts: Total tries per logical call, first one included.
        backoff_base: Base delay in seconds.
    """

    max_attempts: int = 3
    backoff_base: float = 0.1

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.backoff_base < 0:
            raise ValueError("backoff_base must be >= 0")

    def backoff(self, attempt: int) -> float:
        """Delay before the attempt following 0-based ``attempt``."""
        return self.backoff_base * (1 << (attempt + 1))

    def has_attempts_left(self, attempt: int) -> bool:
        """Whether another attempt may follow 0-based ``attempt``."""
        return attempt + 1 < self.max_attempts
