"""Job template repository."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cv_screener_infra.db.models import JobTemplateModel


class TemplateRepository:
    """CRUD operations for job templates."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize with an async session."""
        self._session = session

    async def create(self, model: JobTemplateModel) -> JobTemplateModel:
        """Insert a template."""
        self._session.add(model)
        await self._session.flush()
        return model

    async def get(self, user_id: str, template_id: str) -> JobTemplateModel | None:
        """Fetch a template owned by the user."""
        stmt = select(JobTemplateModel).where(
            JobTemplateModel.id == template_id,
            JobTemplateModel.user_id == user_id,
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_for_user(self, user_id: str) -> list[JobTemplateModel]:
        """Most used templates first, then most recently created."""
        stmt = (
            select(JobTemplateModel)
            .where(JobTemplateModel.user_id == user_id)
            .order_by(JobTemplateModel.usage_count.desc(), JobTemplateModel.created_at.desc())
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def delete(self, model: JobTemplateModel) -> None:
        """Delete a template."""
        await self._session.delete(model)
        await self._session.flush()
