"""Job templates: reusable title + requirement sets per user."""

from __future__ import annotations

from datetime import UTC, datetime

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cv_screener_core.exceptions import NotFoundError
from cv_screener_core.models.template import JobTemplate, TemplateCreate
from cv_screener_infra.db.models import JobTemplateModel
from cv_screener_infra.db.repositories.template_repo import TemplateRepository

logger = structlog.get_logger()


def _to_template(model: JobTemplateModel) -> JobTemplate:
    return JobTemplate(
        id=model.id,
        user_id=model.user_id,
        title=model.title,
        description=model.description,
        job_file_name=model.job_file_name,
        requirements=list(model.requirements_json or []),
        usage_count=model.usage_count,
        last_used_at=model.last_used_at,
        created_at=model.created_at,
    )


class TemplateService:
    """CRUD and usage tracking for job templates."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def list(self, user_id: str) -> list[JobTemplate]:
        """The user's templates, most used first."""
        async with self._session_factory() as session:
            models = await TemplateRepository(session).list_for_user(user_id)
            return [_to_template(m) for m in models]

    async def create(self, user_id: str, payload: TemplateCreate) -> JobTemplate:
        """Save a new template."""
        async with self._session_factory() as session, session.begin():
            model = await TemplateRepository(session).create(
                JobTemplateModel(
                    user_id=user_id,
                    title=payload.title,
                    description=payload.description,
                    job_file_name=payload.job_file_name,
                    requirements_json=list(payload.requirements),
                    usage_count=0,
                )
            )
            template = _to_template(model)

        logger.info("template_created", user_id=user_id, template_id=template.id)
        return template

    async def delete(self, user_id: str, template_id: str) -> None:
        """Delete a template owned by the user.

        Raises:
            NotFoundError: If the user has no such template.
        """
        async with self._session_factory() as session, session.begin():
            repo = TemplateRepository(session)
            model = await repo.get(user_id, template_id)
            if model is None:
                msg = f"Template not found: {template_id}"
                raise NotFoundError(msg)
            await repo.delete(model)

        logger.info("template_deleted", user_id=user_id, template_id=template_id)

    async def use(self, user_id: str, template_id: str) -> JobTemplate:
        """Record that a template was applied to a new analysis."""
        async with self._session_factory() as session, session.begin():
            model = await TemplateRepository(session).get(user_id, template_id)
            if model is None:
                msg = f"Template not found: {template_id}"
                raise NotFoundError(msg)
            model.usage_count = (model.usage_count or 0) + 1
            model.last_used_at = datetime.now(UTC)
            await session.flush()
            template = _to_template(model)

        return template
