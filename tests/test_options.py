"""Tests for call options and hooks."""

import threading

import httpx
import pytest

from http_fetch import (
    BasicAuth,
    CancelOn,
    Headers,
    HookChain,
    NoCookie,
    OutgoingRequest,
    QueryParams,
    RequestHookOption,
    ResponseHookOption,
)
from http_fetch.hooks import run_request_hook
from http_fetch.options import NOCOOKIE_KEY, CallOptions


class TestCallOptionsParse:
    """Tests for folding call options."""

    def test_empty(self):
        """Test no options gives an empty record."""
        opts = CallOptions.parse(())

        assert opts.params == {}
        assert opts.headers == {}
        assert opts.request_hook is None
        assert opts.response_hooks == []
        assert opts.no_cookie is False
        assert opts.auth is None
        assert opts.cancel is None

    def test_mappings_merge_later_wins(self):
        """Test QueryParams and Headers merge with later keys winning."""
        opts = CallOptions.parse((
            QueryParams({"q": "a", "page": "1"}),
            Headers({"X-One": "1"}),
            QueryParams({"q": "b"}),
            Headers({"X-One": "2", "X-Two": "2"}),
        ))

        assert opts.params == {"q": "b", "page": "1"}
        assert opts.headers == {"X-One": "2", "X-Two": "2"}

    def test_response_hooks_accumulate_in_order(self):
        """Test response hooks keep the order given."""
        first = lambda s, c, e: (c, e)  # noqa: E731
        second = lambda s, c, e: (c, e)  # noqa: E731

        opts = CallOptions.parse((ResponseHookOption(first), ResponseHookOption(second)))

        assert opts.response_hooks == [first, second]

    def test_request_hook_last_wins(self):
        """Test a later request hook replaces an earlier one."""
        first = lambda r, b: None  # noqa: E731
        second = lambda r, b: None  # noqa: E731

        opts = CallOptions.parse((RequestHookOption(first), RequestHookOption(second)))

        assert opts.request_hook is second

    def test_no_cookie(self):
        """Test NoCookie isolates the call."""
        assert CallOptions.parse((NoCookie(),)).no_cookie is True

    def test_nocookie_header_key(self):
        """Test the reserved header key isolates cookies and is stripped."""
        opts = CallOptions.parse((Headers({NOCOOKIE_KEY: "true", "Accept": "*/*"}),))

        assert opts.no_cookie is True
        assert opts.headers == {"Accept": "*/*"}

    def test_nocookie_header_other_value(self):
        """Test the reserved key only isolates with value "true"."""
        opts = CallOptions.parse((Headers({NOCOOKIE_KEY: "false"}),))

        assert opts.no_cookie is False
        assert NOCOOKIE_KEY not in opts.headers

    def test_auth_and_cancel(self):
        """Test BasicAuth and CancelOn are picked up."""
        event = threading.Event()

        opts = CallOptions.parse((BasicAuth("user", "pass"), CancelOn(event)))

        assert opts.auth == BasicAuth("user", "pass")
        assert opts.cancel is event

    def test_password_not_in_repr(self):
        """Test the password is kept out of repr."""
        assert "secret" not in repr(BasicAuth("user", "secret"))

    @pytest.mark.parametrize("option", [{"q": "a"}, "Accept: */*", None])
    def test_unknown_option_rejected(self, option):
        """Test objects that are not call options raise TypeError."""
        with pytest.raises(TypeError, match="Unsupported call option"):
            CallOptions.parse((option,))


class TestHookChain:
    """Tests for the response hook chain."""

    def test_empty_chain_passes_through(self):
        """Test an empty chain returns its input."""
        error = ValueError("x")
        assert HookChain()(200, b"body", error) == (b"body", error)

    def test_call_hooks_then_global(self):
        """Test call-scoped hooks run in order and the global hook last."""
        order = []

        def make(name):
            def hook(status, content, error):
                order.append(name)
                return content + name.encode(), error
            return hook

        chain = HookChain([make("a"), make("b")], global_hook=make("g"))

        content, error = chain(200, b">", None)

        assert order == ["a", "b", "g"]
        assert content == b">abg"
        assert error is None
        assert len(chain) == 3

    def test_hook_can_replace_error(self):
        """Test a hook may turn an error into a body."""
        chain = HookChain([lambda s, c, e: (b"fallback", None)])

        assert chain(0, None, TimeoutError()) == (b"fallback", None)


class TestRunRequestHook:
    """Tests for the request hook runner."""

    def test_hook_sees_body(self):
        """Test the hook receives the buffered body."""
        seen = []
        request = OutgoingRequest("POST", httpx.URL("https://example.com"), httpx.Headers(), b"data")

        run_request_hook(lambda r, body: seen.append(body), request)

        assert seen == [b"data"]

    def test_hook_without_body(self):
        """Test a bodiless request gives the hook empty bytes."""
        seen = []
        request = OutgoingRequest("GET", httpx.URL("https://example.com"), httpx.Headers())

        run_request_hook(lambda r, body: seen.append(body), request)

        assert seen == [b""]

    def test_no_hook(self):
        """Test a missing hook leaves the request untouched."""
        request = OutgoingRequest("GET", httpx.URL("https://example.com"), httpx.Headers())

        run_request_hook(None, request)

        assert request.content is None
