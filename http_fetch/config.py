"""Client configuration defaults."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from types import MappingProxyType
from typing import Any, Mapping

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)
DEFAULT_TIMEOUT = 60.0


@dataclass(frozen=True)
class ClientConfig:
    """Configuration for FetchClient.

    Attributes:
        user_agent: User-Agent sent with every request.
        proxy: Proxy spec. ``http://host:port`` selects an HTTP proxy, anything
               else is treated as a SOCKS5 ``host:port``. None connects directly.
        headers: Base headers sent with every request. Stored read-only; every
                 client copies them into its own mutable base headers.
        timeout: Per-attempt timeout in seconds. Bounds each attempt, not the
                 whole retry sequence.
        max_attempts: Total attempts per call, first one included.
        backoff_base: Base delay in seconds for exponential backoff.
        max_redirects: Maximum redirects followed within one attempt.
        cookies_enabled: Whether the client keeps and sends cookies.
    """

    user_agent: str = DEFAULT_USER_AGENT
    proxy: str | None = None
    headers: Mapping[str, str] = field(default_factory=dict)
    timeout: float = DEFAULT_TIMEOUT
    max_attempts: int = 3
    backoff_base: float = 0.1
    max_redirects: int = 10
    cookies_enabled: bool = True

    def __post_init__(self) -> None:
        """Validate configuration values."""
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))
        if self.timeout <= 0:
            raise ValueError("timeout must be > 0")
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.backoff_base < 0:
            raise ValueError("backoff_base must be >= 0")
        if self.max_redirects < 0:
            raise ValueError("max_redirects must be >= 0")

    @classmethod
    def from_options(cls, options: Mapping[str, Any] | None = None) -> "ClientConfig":
        """Build a config from a loose option map.

        Recognised keys are ``userAgent``, ``proxy``, ``headers`` and
        ``timeout`` (or ``Timeout``). A timeout may be given in seconds or as
        a ``timedelta``. Other keys are ignored.

        Raises:
            ValueError: If a recognised key has a value of the wrong type.
        """
        kwargs: dict[str, Any] = {}
        for key, value in (options or {}).items():
            if key == "userAgent":
                if not isinstance(value, str):
                    raise ValueError("userAgent must be a string")
                kwargs["user_agent"] = value
            elif key == "proxy":
                if value is not None and not isinstance(value, str):
                    raise ValueError("proxy must be a string")
                kwargs["proxy"] = value or None
            elif key == "headers":
                if not isinstance(value, Mapping):
                    raise ValueError("headers must be a mapping")
                kwargs["headers"] = dict(value)
            elif key in ("timeout", "Timeout"):
                kwargs["timeout"] = _seconds(value)
        return cls(**kwargs)


def _seconds(value: Any) -> float:
    if isinstance(value, timedelta):
        return value.total_seconds()
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    raise ValueError("timeout must be a number of seconds or a timedelta")


DEFAULT_CONFIG = ClientConfig()
