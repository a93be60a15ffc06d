"""Abstract cache interface."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class CacheClient(Protocol):
    """Key/value cache with per-entry TTL; implementations can be swapped."""

    async def get(self, key: str) -> str | None:
        """Retrieve a value by key, or None if not found or expired."""
        ...

    async def set(self, key: str, value: str, ttl_seconds: int = 86400) -> None:
        """Insert or replace a value with a TTL."""
        ...

    async def delete(self, key: str) -> None:
        """Delete a key from the cache."""
        ...

    async def exists(self, key: str) -> bool:
        """Check if a key exists in the cache."""
        ...

    async def purge_expired(self) -> int:
        """Remove expired entries and return how many were dropped."""
        ...
