"""In-memory fakes for the cache and auth interfaces."""

from __future__ import annotations

from cv_screener_core.exceptions import AuthenticationError
from cv_screener_core.interfaces.auth import AuthenticatedUser


class FakeCache:
    """Dict-backed CacheClient that records TTLs."""

    def __init__(self) -> None:
        self.data: dict[str, str] = {}
        self.ttls: dict[str, int] = {}

    async def get(self, key: str) -> str | None:
        return self.data.get(key)

    async def set(self, key: str, value: str, ttl_seconds: int = 86400) -> None:
        self.data[key] = value
        self.ttls[key] = ttl_seconds

    async def delete(self, key: str) -> None:
        self.data.pop(key, None)

    async def exists(self, key: str) -> bool:
        return key in self.data

    async def purge_expired(self) -> int:
        return 0


class FakeVerifier:
    """Accepts tokens of the form ``token-<user id>``."""

    async def verify(self, token: str) -> AuthenticatedUser:
        if not token.startswith("token-"):
            msg = "Unauthorized"
            raise AuthenticationError(msg)
        user_id = token.removeprefix("token-")
        return AuthenticatedUser(id=user_id, email=f"{user_id}@test.local")
