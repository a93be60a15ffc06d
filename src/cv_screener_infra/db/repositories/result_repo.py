"""Analysis result repository."""

from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cv_screener_core.models.analysis import CandidateResult
from cv_screener_infra.db.models import AnalysisResultModel


def to_result_model(
    result: CandidateResult,
    user_id: str,
    analysis_id: str,
    title: str | None,
) -> AnalysisResultModel:
    """Map a domain result to its table row."""
    return AnalysisResultModel(
        user_id=user_id,
        analysis_id=analysis_id,
        title=title,
        name=result.name,
        file_name=result.file_name,
        overall=result.overall,
        scores_json=dict(result.scores),
        strengths_json=list(result.strengths),
        concerns_json=list(result.concerns),
        cv_text_hash=result.cv_text_hash,
    )


def to_candidate_result(model: AnalysisResultModel) -> CandidateResult:
    """Map a stored row back to a domain result."""
    return CandidateResult(
        name=model.name,
        overall=model.overall,
        scores={str(k): int(v) for k, v in (model.scores_json or {}).items()},
        strengths=list(model.strengths_json or []),
        concerns=list(model.concerns_json or []),
        cv_text_hash=model.cv_text_hash,
        file_name=model.file_name,
    )


class ResultRepository:
    """CRUD operations for stored analysis results."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize with an async session."""
        self._session = session

    async def add_many(self, models: Sequence[AnalysisResultModel]) -> int:
        """Insert result rows."""
        self._session.add_all(list(models))
        await self._session.flush()
        return len(models)

    async def list_for_analysis(self, user_id: str, analysis_id: str) -> list[AnalysisResultModel]:
        """Results of one analysis, best first."""
        stmt = (
            select(AnalysisResultModel)
            .where(
                AnalysisResultModel.user_id == user_id,
                AnalysisResultModel.analysis_id == analysis_id,
            )
            .order_by(AnalysisResultModel.overall.desc())
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def list_for_analyses(
        self, user_id: str, analysis_ids: Sequence[str]
    ) -> list[AnalysisResultModel]:
        """Results of several analyses, best first."""
        stmt = (
            select(AnalysisResultModel)
            .where(
                AnalysisResultModel.user_id == user_id,
                AnalysisResultModel.analysis_id.in_(list(analysis_ids)),
            )
            .order_by(AnalysisResultModel.overall.desc())
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def has_cv_text_hash(self, user_id: str, cv_text_hash: str) -> bool:
        """Whether the user has a stored result built from this CV excerpt."""
        stmt = (
            select(AnalysisResultModel.id)
            .where(
                AnalysisResultModel.user_id == user_id,
                AnalysisResultModel.cv_text_hash == cv_text_hash,
            )
            .limit(1)
        )
        result = await self._session.execute(stmt)
        return result.first() is not None
