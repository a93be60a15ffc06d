"""Stored CV excerpt repository."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cv_screener_infra.db.models import CVTextModel


def _as_aware(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


class CVTextRepository:
    """Anonymized CV excerpts keyed by their SHA-256 hash."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize with an async session."""
        self._session = session

    async def upsert(
        self, text_hash: str, cv_text: str, candidate_name: str, ttl_days: int
    ) -> CVTextModel:
        """Insert or refresh an excerpt."""
        now = datetime.now(UTC)
        expires_at = now + timedelta(days=ttl_days)
        model = await self._session.get(CVTextModel, text_hash)
        if model is None:
            model = CVTextModel(
                text_hash=text_hash,
                cv_text=cv_text,
                candidate_name=candidate_name,
                created_at=now,
                expires_at=expires_at,
            )
            self._session.add(model)
        else:
            model.cv_text = cv_text
            model.candidate_name = candidate_name
            model.expires_at = expires_at
        await self._session.flush()
        return model

    async def get_valid(self, text_hash: str) -> CVTextModel | None:
        """Return the excerpt unless it is missing or expired."""
        model = await self._session.get(CVTextModel, text_hash)
        if model is None:
            return None
        if _as_aware(model.expires_at) < datetime.now(UTC):
            return None
        return model

    async def delete_expired(self, now: datetime | None = None) -> int:
        """Remove expired excerpts."""
        cutoff = now or datetime.now(UTC)
        result = await self._session.execute(
            delete(CVTextModel).where(CVTextModel.expires_at < cutoff)
        )
        return int(result.rowcount or 0)  # type: ignore[attr-defined]


class CVTextStore:
    """Session-per-call facade used by agents running concurrently."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], ttl_days: int) -> None:
        self._session_factory = session_factory
        self._ttl_days = ttl_days

    async def save(self, text_hash: str, cv_text: str, candidate_name: str) -> None:
        async with self._session_factory() as session, session.begin():
            await CVTextRepository(session).upsert(
                text_hash, cv_text, candidate_name, self._ttl_days
            )

    async def load(self, text_hash: str) -> tuple[str, str] | None:
        """Return (cv_text, candidate_name) for a stored excerpt."""
        async with self._session_factory() as session:
            model = await CVTextRepository(session).get_valid(text_hash)
            if model is None:
                return None
            return model.cv_text, model.candidate_name
