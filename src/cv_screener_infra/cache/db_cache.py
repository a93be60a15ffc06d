"""Database-backed implementation of CacheClient using a key/value table."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from sqlalchemy import DateTime, String, Text, delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import Mapped, mapped_column

from cv_screener_infra.db.models import Base


class CacheEntry(Base):
    """Simple key/value cache table with expiry."""

    __tablename__ = "cache_entries"

    key: Mapped[str] = mapped_column(String(512), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC)
    )
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


def _is_expired(expires_at: datetime) -> bool:
    """Check expiry, handling both naive and aware datetimes."""
    now = datetime.now(UTC)
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=UTC)
    return expires_at < now


class DBCacheClient:
    """Cache implementation backed by the application's database.

    Every call runs in its own short session so that concurrent scoring
    tasks never share a session.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        """Initialize with an async SQLAlchemy session factory."""
        self._session_factory = session_factory

    async def get(self, key: str) -> str | None:
        """Retrieve a value by key, or None if missing/expired."""
        async with self._session_factory() as session:
            entry = await session.get(CacheEntry, key)
            if entry is None:
                return None
            if entry.expires_at and _is_expired(entry.expires_at):
                await session.delete(entry)
                await session.commit()
                return None
            return entry.value

    async def set(self, key: str, value: str, ttl_seconds: int = 86400) -> None:
        """Upsert a value with TTL."""
        now = datetime.now(UTC)
        async with self._session_factory() as session:
            entry = await session.get(CacheEntry, key)
            if entry is None:
                session.add(
                    CacheEntry(
                        key=key,
                        value=value,
                        created_at=now,
                        expires_at=now + timedelta(seconds=ttl_seconds),
                    )
                )
            else:
                entry.value = value
                entry.created_at = now
                entry.expires_at = now + timedelta(seconds=ttl_seconds)
            await session.commit()

    async def delete(self, key: str) -> None:
        """Delete a key from the cache."""
        async with self._session_factory() as session:
            await session.execute(delete(CacheEntry).where(CacheEntry.key == key))
            await session.commit()

    async def exists(self, key: str) -> bool:
        """Check if a key exists and is not expired."""
        async with self._session_factory() as session:
            stmt = select(CacheEntry.expires_at).where(CacheEntry.key == key)
            result = await session.execute(stmt)
            row = result.first()
        if row is None:
            return False
        expires_at = row[0]
        return not (expires_at and _is_expired(expires_at))

    async def purge_expired(self) -> int:
        """Delete every expired entry and return how many were removed."""
        async with self._session_factory() as session:
            result = await session.execute(
                delete(CacheEntry).where(CacheEntry.expires_at < datetime.now(UTC))
            )
            await session.commit()
        return int(result.rowcount or 0)  # type: ignore[attr-defined]
