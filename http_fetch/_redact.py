"""Credential masking for log output."""

from __future__ import annotations

MASK = "****"


def mask_credentials(url: str | None) -> str | None:
    """Mask the password part of ``user:password@`` in a URL or proxy spec.

    Args:
        url: URL or bare ``user:pass@host:port`` that may carry credentials.

    Returns:
        The same string with the password replaced by ``****``.
    """
    if not url or "@" not in url:
        return url

    if "://" in url:
        scheme, rest = url.split("://", 1)
        prefix = f"{scheme}://"
    else:
        prefix, rest = "", url

    netloc, sep, tail = rest.partition("/")
    if "@" not in netloc:
        return url

    creds, host = netloc.rsplit("@", 1)
    if ":" in creds:
        user, _ = creds.split(":", 1)
        creds = f"{user}:{MASK}"
    return f"{prefix}{creds}@{host}{sep}{tail}"
