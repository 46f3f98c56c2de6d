"""Thread-safe cookie storage with a full export view.

A standard cookie jar only answers "which cookies go with this URL". The
store below keeps a standard jar for that, and next to it a table of every
cookie batch ever set, keyed by the exact URL that set it, so the whole
session can be dumped without knowing which domains were visited.
"""

from __future__ import annotations

import copy
import urllib.request
from http.cookiejar import Cookie, CookieJar, DefaultCookiePolicy
from typing import Iterable

import httpx

from .locks import RWLock


class CookieStore:
    """Cookie jar that also records every cookie set, per request URL.

    Both views are updated together under one exclusive lock, so the
    export table never disagrees with the jar. Reads take the shared lock.

    Args:
        policy: Acceptance and matching rules. A ``DefaultCookiePolicy``
                when omitted.
    """

    def __init__(self, policy: DefaultCookiePolicy | None = None) -> None:
        self._policy = policy or DefaultCookiePolicy()
        self._jar = CookieJar(self._policy)
        self._exported: dict[str, list[Cookie]] = {}
        self._lock = RWLock()

    @property
    def jar(self) -> CookieJar:
        """The underlying standard jar."""
        return self._jar

    def set_cookies(self, url: str, cookies: Iterable[Cookie]) -> list[Cookie]:
        """Store cookies in the jar and record them under ``url``.

        The whole batch is recorded under ``url``, replacing any earlier
        batch. Only the cookies that ``url`` may set (domain, path, name and
        port rules of the policy) go into the jar.

        Returns:
            The cookies accepted into the jar.
        """
        batch = list(cookies)
        request = urllib.request.Request(url)
        accepted = [cookie for cookie in batch if self._may_set(cookie, request)]
        with self._lock.write_lock():
            self._exported[url] = batch
            for cookie in accepted:
                self._jar.set_cookie(cookie)
            self._jar.clear_expired_cookies()
        return accepted

    def cookies(self, url: str) -> list[Cookie]:
        """Return the cookies the jar would send to ``url``.

        Most specific path first.
        """
        request = urllib.request.Request(url)
        with self._lock.read_lock():
            matching = [cookie for cookie in self._jar if self._may_return(cookie, request)]
        matching.sort(key=lambda c: len(c.path), reverse=True)
        return matching

    def export_all(self) -> dict[str, list[Cookie]]:
        """Return an independent copy of every recorded batch."""
        with self._lock.read_lock():
            return {
                url: [copy.deepcopy(cookie) for cookie in batch]
                for url, batch in self._exported.items()
            }

    def extract_from(self, response: httpx.Response) -> list[Cookie]:
        """Record the ``Set-Cookie`` headers of ``response``.

        The cookies are parsed and validated by a scratch jar against the
        response's request URL, then stored like any other batch.

        Returns:
            The cookies accepted from the response.
        """
        scratch = httpx.Cookies()
        scratch.extract_cookies(response)
        parsed = list(scratch.jar)
        if not parsed:
            return []
        return self.set_cookies(str(response.request.url), parsed)

    def attach_to(self, request: httpx.Request) -> None:
        """Set the ``Cookie`` header of ``request`` from the jar.

        A ``Cookie`` header already on the request is left alone.
        """
        if "Cookie" in request.headers:
            return
        cookies = self.cookies(str(request.url))
        if cookies:
            request.headers["Cookie"] = "; ".join(
                cookie.name if cookie.value is None else f"{cookie.name}={cookie.value}"
                for cookie in cookies
            )

    def clear(self) -> None:
        """Drop every cookie and every recorded batch."""
        with self._lock.write_lock():
            self._jar.clear()
            self._exported.clear()

    def __len__(self) -> int:
        """Return the number of cookies held by the jar."""
        with self._lock.read_lock():
            return len(self._jar)

    def _may_set(self, cookie: Cookie, request: urllib.request.Request) -> bool:
        # set_ok only checks the domain of Domain= cookies; host-only ones
        # must still belong to the request host.
        return self._policy.set_ok(cookie, request) and self._policy.domain_return_ok(
            cookie.domain, request
        )

    def _may_return(self, cookie: Cookie, request: urllib.request.Request) -> bool:
        policy = self._policy
        return (
            not cookie.is_expired()
            and policy.domain_return_ok(cookie.domain, request)
            and policy.path_return_ok(cookie.path, request)
            and policy.return_ok_domain(cookie, request)
            and policy.return_ok_secure(cookie, request)
            and policy.return_ok_port(cookie, request)
        )
