"""Redis-backed implementation of CacheClient."""

from __future__ import annotations

from redis.asyncio import Redis


class RedisCacheClient:
    """Cache backed by Redis, for deployments running several API workers."""

    def __init__(self, redis: Redis, namespace: str = "cvs:") -> None:  # type: ignore[type-arg]
        """Initialize with a redis-py asyncio client and a key namespace."""
        self._redis = redis
        self._namespace = namespace

    @classmethod
    def from_url(cls, url: str, namespace: str = "cvs:") -> RedisCacheClient:
        """Build a client from a redis:// URL."""
        return cls(Redis.from_url(url), namespace=namespace)

    def _key(self, key: str) -> str:
        return f"{self._namespace}{key}"

    async def get(self, key: str) -> str | None:
        """Retrieve a value by key."""
        value = await self._redis.get(self._key(key))
        if value is None:
            return None
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return str(value)

    async def set(self, key: str, value: str, ttl_seconds: int = 86400) -> None:
        """Store a value with TTL."""
        await self._redis.set(name=self._key(key), value=value, ex=ttl_seconds)

    async def delete(self, key: str) -> None:
        """Delete a key from the cache."""
        await self._redis.delete(self._key(key))

    async def exists(self, key: str) -> bool:
        """Check if a key exists."""
        count = await self._redis.exists(self._key(key))
        return bool(count)

    async def purge_expired(self) -> int:
        """Redis expires keys itself; nothing to purge."""
        return 0

    async def close(self) -> None:
        """Close the connection pool."""
        await self._redis.aclose()
