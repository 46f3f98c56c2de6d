"""Attempt loop for one logical call.

A call moves Building -> Attempting -> Succeeded | Failed, passing through
Retrying between attempts. Building happens in ``FetchClient``; this module
takes the prepared call from there:

- the request hook runs once, then up to ``max_attempts`` attempts follow;
- every attempt rebuilds the request from the buffered body, so nothing is
  left half-consumed by an earlier attempt;
- a transport error is classified by ``should_retry``; transient ones are
  retried after an exponential backoff, anything else fails the call;
- any HTTP response, whatever its status, ends the loop;
- the terminal outcome, success or failure, goes through the response hook
  chain exactly once.
"""

from __future__ import annotations

import gzip
import threading
import time
import zlib
from dataclasses import dataclass, field
from http.cookiejar import CookieJar
from typing import Callable

import httpx
import structlog

from ._redact import mask_credentials
from .hooks import HookChain, OutgoingRequest, RequestHook, run_request_hook
from .models import (
    DecodeError,
    FetchResult,
    NoResponseError,
    RequestCancelled,
    TransientNetworkError,
    TransportError,
)
from .options import BasicAuth
from .retry import RetryPolicy, should_retry
from .safety import CookieStore

logger = structlog.get_logger()

# Errors raised by a single attempt that count as transport failures.
ATTEMPT_ERRORS: tuple[type[BaseException], ...] = (
    httpx.RequestError,
    OSError,
    NoResponseError,
)


class DiscardingJar(CookieJar):
    """Jar that never stores anything.

    Installed on the shared ``httpx.Client`` so its own cookie handling
    stays inert; cookies flow through the call's ``CookieStore`` instead.
    """

    def set_cookie(self, cookie) -> None:
        pass

    def extract_cookies(self, response, request) -> None:
        pass


@dataclass
class PreparedCall:
    """A call after the Building stage.

    Attributes:
        request: Request view, mutated by the request hook.
        timeout: Per-attempt timeout in seconds.
        cookie_store: Store for this call, or None when cookies are off.
        request_hook: Hook run once before the first attempt.
        hooks: Response hook chain for the terminal outcome.
        auth: Basic credentials sent with every attempt of this call.
        cancel: Event interrupting the backoff sleep.
    """

    request: OutgoingRequest
    timeout: float
    cookie_store: CookieStore | None = None
    request_hook: RequestHook | None = None
    hooks: HookChain = field(default_factory=HookChain)
    auth: BasicAuth | None = None
    cancel: threading.Event | None = None


def finish(
    hooks: HookChain,
    status_code: int,
    content: bytes | None,
    error: BaseException | None,
) -> FetchResult:
    """Pass a terminal outcome through ``hooks`` and wrap it."""
    content, error = hooks(status_code, content, error)
    return FetchResult(status_code, content, error)


def decode_body(response: httpx.Response, raw: bytes) -> bytes:
    """Gunzip ``raw`` when the response says it is gzip-encoded.

    Raises:
        DecodeError: If the gzip stream is corrupt or truncated.
    """
    encoding = response.headers.get("Content-Encoding", "").strip().lower()
    if encoding != "gzip":
        return raw
    try:
        return gzip.decompress(raw)
    except (OSError, EOFError, zlib.error) as exc:
        raise DecodeError(f"Failed to decode gzip body: {exc}", original_error=exc) from exc


class Executor:
    """Runs prepared calls against the current ``httpx.Client``.

    Args:
        session: Returns the ``httpx.Client`` to send through. Called on
                 every attempt, so a transport swapped between attempts is
                 picked up by the next one.
        policy: Attempt budget and backoff.
        max_redirects: Redirects followed within one attempt.
        on_response: Receives the headers of every final response.
    """

    def __init__(
        self,
        session: Callable[[], httpx.Client],
        policy: RetryPolicy | None = None,
        max_redirects: int = 10,
        on_response: Callable[[httpx.Headers], None] | None = None,
    ) -> None:
        self._session = session
        self.policy = policy or RetryPolicy()
        self.max_redirects = max_redirects
        self._on_response = on_response

    def execute(self, call: PreparedCall) -> FetchResult:
        """Run ``call`` to its terminal outcome."""
        request = call.request
        log = logger.bind(
            component="engine",
            method=request.method,
            url=mask_credentials(str(request.url)),
        )

        run_request_hook(call.request_hook, request)

        attempt = 0
        while True:
            log.debug("request_attempt", attempt=attempt + 1)
            try:
                response, raw = self._attempt(call)
            except ATTEMPT_ERRORS as exc:
                retryable = isinstance(exc, NoResponseError) or should_retry(exc)
                if not retryable:
                    log.warning("request_failed", attempt=attempt + 1, error=str(exc))
                    error = TransportError(
                        f"Request failed: {type(exc).__name__}: {exc}",
                        original_error=exc,
                        attempts=attempt + 1,
                    )
                    return finish(call.hooks, 0, None, error)

                if not self.policy.has_attempts_left(attempt):
                    log.warning("retries_exhausted", attempts=attempt + 1, error=str(exc))
                    error = TransientNetworkError(
                        str(request.url), attempts=attempt + 1, original_error=exc
                    )
                    return finish(call.hooks, 0, None, error)

                delay = self.policy.backoff(attempt)
                log.info(
                    "retry_scheduled",
                    attempt=attempt + 1,
                    delay=delay,
                    error=str(exc),
                )
                if not self._wait(delay, call.cancel):
                    log.info("request_cancelled", attempts=attempt + 1)
                    error = RequestCancelled(str(request.url), attempt + 1, last_error=exc)
                    return finish(call.hooks, 0, None, error)
                attempt += 1
                continue
            break

        if self._on_response is not None:
            self._on_response(response.headers)

        try:
            body = decode_body(response, raw)
        except DecodeError as exc:
            log.warning("response_decode_failed", status_code=response.status_code)
            return finish(call.hooks, response.status_code, None, exc)

        log.debug(
            "request_complete",
            status_code=response.status_code,
            attempts=attempt + 1,
            bytes=len(body),
        )
        return finish(call.hooks, response.status_code, body, None)

    def _attempt(self, call: PreparedCall) -> tuple[httpx.Response, bytes]:
        """Send one attempt, following redirects.

        ``call.timeout`` bounds the whole attempt: every hop and the body
        read share one deadline.

        Returns:
            The final response and its raw (still encoded) body.

        Raises:
            httpx.ReadTimeout: If the deadline passes mid-attempt.
        """
        deadline = time.monotonic() + call.timeout
        session = self._session()
        outgoing = call.request
        request = session.build_request(
            outgoing.method,
            outgoing.url,
            headers=outgoing.headers,
            content=outgoing.content,
            timeout=call.timeout,
        )
        auth = (
            httpx.BasicAuth(call.auth.username, call.auth.password)
            if call.auth is not None
            else None
        )

        redirects = 0
        while True:
            remaining = self._remaining(deadline, call.timeout, request)
            request.extensions = {
                **request.extensions,
                "timeout": httpx.Timeout(remaining).as_dict(),
            }
            if call.cookie_store is not None:
                call.cookie_store.attach_to(request)

            response = session.send(request, auth=auth, stream=True, follow_redirects=False)
            if response is None:
                raise NoResponseError(str(request.url))

            try:
                if call.cookie_store is not None:
                    call.cookie_store.extract_from(response)
                next_request = response.next_request
                if next_request is None:
                    raw = self._read_raw(response, deadline, call.timeout)
                    return response, raw
            finally:
                response.close()

            redirects += 1
            if redirects > self.max_redirects:
                raise httpx.TooManyRedirects(
                    "Exceeded maximum allowed redirects.", request=next_request
                )
            request = next_request
            # httpx already carried Authorization over for same-origin hops.
            auth = None

    @staticmethod
    def _remaining(deadline: float, timeout: float, request: httpx.Request) -> float:
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise httpx.ReadTimeout(
                f"Attempt exceeded its {timeout}s timeout", request=request
            )
        return remaining

    @classmethod
    def _read_raw(cls, response: httpx.Response, deadline: float, timeout: float) -> bytes:
        """Read the undecoded body, giving up once ``deadline`` passes."""
        chunks = []
        for chunk in response.iter_raw():
            chunks.append(chunk)
            cls._remaining(deadline, timeout, response.request)
        return b"".join(chunks)

    @staticmethod
    def _wait(delay: float, cancel: threading.Event | None) -> bool:
        """Sleep for ``delay`` seconds; False if ``cancel`` fired first."""
        if cancel is None:
            time.sleep(delay)
            return True
        return not cancel.wait(delay)
