"""Per-call options.

Options are passed positionally after the URL, in any order::

    client.get(
        "https://example.com/search",
        QueryParams({"q": "python"}),
        Headers({"Referer": "https://example.com/"}),
        NoCookie(),
    )

Mapping options merge, later keys winning. A later request hook, BasicAuth
or CancelOn replaces an earlier one. Response hooks accumulate and run in
the order given.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Mapping

from .hooks import RequestHook, ResponseHook

NOCOOKIE_KEY = "__nocookie__"


@dataclass(frozen=True)
class QueryParams:
    """Query parameters merged into the URL (GET/DELETE)."""

    params: Mapping[str, str]


@dataclass(frozen=True)
class Headers:
    """Call-scoped headers, overriding the client's base headers.

    The reserved key ``__nocookie__`` with value ``"true"`` isolates cookies
    for the call, like ``NoCookie()``. It is never sent.
    """

    headers: Mapping[str, str]


@dataclass(frozen=True)
class RequestHookOption:
    """Hook run once before the first send of the call."""

    hook: RequestHook


@dataclass(frozen=True)
class ResponseHookOption:
    """Hook run once on the terminal outcome of the call."""

    hook: ResponseHook


@dataclass(frozen=True)
class NoCookie:
    """Use a fresh, empty cookie store for this call only."""


@dataclass(frozen=True)
class BasicAuth:
    """HTTP basic credentials for this call only."""

    username: str
    password: str = field(repr=False)


@dataclass(frozen=True)
class CancelOn:
    """Abandon retrying once ``event`` is set."""

    event: threading.Event


CallOption = (
    QueryParams
    | Headers
    | RequestHookOption
    | ResponseHookOption
    | NoCookie
    | BasicAuth
    | CancelOn
)


@dataclass
class CallOptions:
    """Options of one call, folded together."""

    params: dict[str, str] = field(default_factory=dict)
    headers: dict[str, str] = field(default_factory=dict)
    request_hook: RequestHook | None = None
    response_hooks: list[ResponseHook] = field(default_factory=list)
    no_cookie: bool = False
    auth: BasicAuth | None = None
    cancel: threading.Event | None = None

    @classmethod
    def parse(cls, options: tuple[CallOption, ...]) -> "CallOptions":
        """Fold a sequence of options into one record.

        Raises:
            TypeError: On an object that is not a call option.
        """
        result = cls()
        for option in options:
            if isinstance(option, QueryParams):
                result.params.update(option.params)
            elif isinstance(option, Headers):
                for name, value in option.headers.items():
                    if name == NOCOOKIE_KEY:
                        result.no_cookie = result.no_cookie or value == "true"
                    else:
                        result.headers[name] = value
            elif isinstance(option, RequestHookOption):
                result.request_hook = option.hook
            elif isinstance(option, ResponseHookOption):
                result.response_hooks.append(option.hook)
            elif isinstance(option, NoCookie):
                result.no_cookie = True
            elif isinstance(option, BasicAuth):
                result.auth = option
            elif isinstance(option, CancelOn):
                result.cancel = option.event
            else:
                raise TypeError(f"Unsupported call option: {option!r}")
        return result
