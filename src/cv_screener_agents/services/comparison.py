"""Compare candidates across several past analyses."""

from __future__ import annotations

from collections.abc import Sequence

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cv_screener_core.constants import (
    MAX_COMPARE_ANALYSES,
    MIN_COMPARE_ANALYSES,
    REQUIREMENT_MET_THRESHOLD,
)
from cv_screener_core.exceptions import InvalidRequestError, NotFoundError
from cv_screener_core.models.comparison import (
    AnalysisInfo,
    ComparedCandidate,
    ComparisonResult,
    RequirementScore,
)
from cv_screener_infra.db.models import AnalysisResultModel
from cv_screener_infra.db.repositories.result_repo import ResultRepository

logger = structlog.get_logger()

DIFFERENT_REQUIREMENTS = "different_requirements"
UNKNOWN_ANALYSIS_TITLE = "Unknown"

# Lower bound (inclusive) of each bucket on the 0-100 scale
SCORE_BUCKETS: list[tuple[str, float]] = [
    ("90-100%", 90),
    ("80-89%", 80),
    ("70-79%", 70),
    ("60-69%", 60),
    ("<60%", float("-inf")),
]


def score_distribution(scores: Sequence[float]) -> dict[str, int]:
    """Count scores per bucket; every bucket is present."""
    counts = {label: 0 for label, _ in SCORE_BUCKETS}
    for score in scores:
        for label, lower in SCORE_BUCKETS:
            if score >= lower:
                counts[label] += 1
                break
    return counts


def _analysis_infos(
    analysis_ids: Sequence[str], rows: Sequence[AnalysisResultModel]
) -> list[AnalysisInfo]:
    first_rows: dict[str, AnalysisResultModel] = {}
    for row in rows:
        first_rows.setdefault(row.analysis_id, row)

    infos: list[AnalysisInfo] = []
    for analysis_id in analysis_ids:
        row = first_rows.get(analysis_id)
        if row is None:
            continue
        infos.append(
            AnalysisInfo(
                id=analysis_id,
                title=row.title,
                date=row.created_at,
                requirements=list((row.scores_json or {}).keys()),
            )
        )
    return infos


def _to_candidate(row: AnalysisResultModel, info: AnalysisInfo | None) -> ComparedCandidate:
    scores = {str(k): int(v) for k, v in (row.scores_json or {}).items()}
    return ComparedCandidate(
        name=row.name,
        score=round(row.overall * 10, 1),
        overall=row.overall,
        scores=scores,
        requirements=[
            RequirementScore(requirement=req, score=score, met=score >= REQUIREMENT_MET_THRESHOLD)
            for req, score in scores.items()
        ],
        strengths=list(row.strengths_json or []),
        concerns=list(row.concerns_json or []),
        analysis_id=row.analysis_id,
        analysis_title=(info.title if info and info.title else UNKNOWN_ANALYSIS_TITLE),
        analysis_date=info.date if info else row.created_at,
    )


class ComparisonService:
    """Combine stored results of 2-5 analyses into one ranking."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def compare(
        self,
        user_id: str,
        analysis_ids: Sequence[str],
        allow_mixed: bool = False,
    ) -> ComparisonResult:
        """Rank candidates of several analyses together.

        When the analyses were run against different requirement sets the
        result only carries a warning, unless ``allow_mixed`` is set.

        Raises:
            InvalidRequestError: If fewer than 2 or more than 5 ids are given.
            NotFoundError: If any analysis has no stored results for the user.
        """
        ids = list(dict.fromkeys(a for a in analysis_ids if a))
        if len(ids) < MIN_COMPARE_ANALYSES:
            msg = f"Select at least {MIN_COMPARE_ANALYSES} analyses to compare"
            raise InvalidRequestError(msg)
        if len(ids) > MAX_COMPARE_ANALYSES:
            msg = f"At most {MAX_COMPARE_ANALYSES} analyses can be compared at once"
            raise InvalidRequestError(msg)

        async with self._session_factory() as session:
            rows = await ResultRepository(session).list_for_analyses(user_id, ids)

        infos = _analysis_infos(ids, rows)
        if len(infos) != len(ids):
            found = {info.id for info in infos}
            missing = [a for a in ids if a not in found]
            msg = f"Analyses not found: {', '.join(missing)}"
            raise NotFoundError(msg)

        first = sorted(infos[0].requirements)
        same_requirements = all(sorted(info.requirements) == first for info in infos)
        if not same_requirements and not allow_mixed:
            logger.info("compare_requirements_differ", user_id=user_id, analyses=len(ids))
            return ComparisonResult(analyses=infos, warning=DIFFERENT_REQUIREMENTS)

        by_id = {info.id: info for info in infos}
        candidates = [_to_candidate(row, by_id.get(row.analysis_id)) for row in rows]
        candidates.sort(key=lambda c: c.score, reverse=True)

        logger.info(
            "analyses_compared",
            user_id=user_id,
            analyses=len(ids),
            candidates=len(candidates),
            mixed_requirements=not same_requirements,
        )
        return ComparisonResult(
            analyses=infos,
            job_title=infos[0].title,
            requirements=infos[0].requirements,
            total_candidates=len(candidates),
            score_distribution=score_distribution([c.score for c in candidates]),
            candidates=candidates,
        )
