"""Thread-safe primitives shared by concurrent calls."""

from .cookie_store import CookieStore
from .locks import RWLock

__all__ = [
    "CookieStore",
    "RWLock",
]
