"""Request and response hook pipeline.

A request hook sees the outgoing request once per call, after the body has
been buffered and before the first send. It may add headers (signatures,
tokens) or replace ``request.content``; every attempt of the call replays
whatever ``request.content`` holds once the hook returns.

A response hook sees the terminal outcome of a call exactly once, never an
intermediate retry, and returns a possibly transformed ``(body, error)``
pair. Call-scoped hooks run first, then the client-wide hook, each fed the
previous one's output.

Hooks may run concurrently for calls sharing a client. They must not touch
shared state without their own synchronization.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Sequence

import httpx

ResponseHook = Callable[
    [int, bytes | None, BaseException | None],
    tuple[bytes | None, BaseException | None],
]


@dataclass
class OutgoingRequest:
    """Mutable view of a call's request, handed to the request hook.

    Attributes:
        method: HTTP method.
        url: Target URL, query included.
        headers: Merged headers (case-insensitive).
        content: Buffered body bytes replayed on every attempt, or None for
                 a request without a body.
    """

    method: str
    url: httpx.URL
    headers: httpx.Headers
    content: bytes | None = None


RequestHook = Callable[[OutgoingRequest, bytes], None]


class HookChain:
    """Ordered response hooks applied to a terminal outcome."""

    def __init__(
        self,
        hooks: Sequence[ResponseHook] = (),
        global_hook: ResponseHook | None = None,
    ) -> None:
        self._hooks: list[ResponseHook] = list(hooks)
        if global_hook is not None:
            self._hooks.append(global_hook)

    def __len__(self) -> int:
        return len(self._hooks)

    def __call__(
        self,
        status_code: int,
        content: bytes | None,
        error: BaseException | None,
    ) -> tuple[bytes | None, BaseException | None]:
        for hook in self._hooks:
            content, error = hook(status_code, content, error)
        return content, error


def run_request_hook(
    hook: RequestHook | None,
    request: OutgoingRequest,
) -> None:
    """Run ``hook`` against ``request`` with the body as first captured."""
    if hook is not None:
        hook(request, request.content or b"")
