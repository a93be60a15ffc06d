"""Public interface re-exports for cv_screener_core."""

from cv_screener_core.interfaces.auth import AuthenticatedUser, TokenVerifier
from cv_screener_core.interfaces.cache import CacheClient

__all__ = [
    "AuthenticatedUser",
    "CacheClient",
    "TokenVerifier",
]
