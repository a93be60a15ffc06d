"""Factory for the configured cache backend."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cv_screener_core.interfaces.cache import CacheClient

if TYPE_CHECKING:
    from cv_screener_core.config.settings import Settings


def create_cache_client(
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
) -> CacheClient:
    """Create a cache client based on settings.

    Returns ``RedisCacheClient`` when ``settings.cache_backend == "redis"``,
    otherwise a ``DBCacheClient`` on the application database.
    """
    if settings.cache_backend == "redis":
        from cv_screener_infra.cache.redis_cache import RedisCacheClient

        return RedisCacheClient.from_url(settings.redis_url)

    from cv_screener_infra.cache.db_cache import DBCacheClient

    return DBCacheClient(session_factory)
