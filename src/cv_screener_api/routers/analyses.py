"""Past analyses: stored results, report downloads and comparison."""

from __future__ import annotations

import asyncio
from typing import Annotated, Any, Literal

from fastapi import APIRouter, Query
from fastapi.responses import FileResponse

from cv_screener_agents.orchestrator.container import ServiceContainer
from cv_screener_agents.services.comparison import DIFFERENT_REQUIREMENTS
from cv_screener_api.deps import CurrentUser, ServicesDep
from cv_screener_api.schemas import CompareBody
from cv_screener_core.exceptions import NotFoundError
from cv_screener_core.models.analysis import CandidateResult
from cv_screener_core.models.comparison import ComparisonResult
from cv_screener_infra.db.repositories.result_repo import ResultRepository, to_candidate_result

router = APIRouter(prefix="/analyses", tags=["analyses"])

DIFFERENT_REQUIREMENTS_MESSAGE = (
    "The analyses use different requirements. The comparison may be misleading."
)

MEDIA_TYPES = {
    "csv": "text/csv",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}


async def _load_results(
    services: ServiceContainer, user_id: str, analysis_id: str
) -> tuple[str | None, list[CandidateResult]]:
    async with services.session_factory() as session:
        rows = await ResultRepository(session).list_for_analysis(user_id, analysis_id)
    if not rows:
        msg = f"Analysis not found: {analysis_id}"
        raise NotFoundError(msg)
    return rows[0].title, [to_candidate_result(row) for row in rows]


def comparison_payload(result: ComparisonResult) -> dict[str, Any]:
    """Response body of the compare endpoint."""
    if result.warning == DIFFERENT_REQUIREMENTS:
        return {
            "ok": True,
            "warning": DIFFERENT_REQUIREMENTS,
            "message": DIFFERENT_REQUIREMENTS_MESSAGE,
            "analyses": [
                {"id": a.id, "title": a.title, "requirements": a.requirements}
                for a in result.analyses
            ],
        }

    return {
        "ok": True,
        "comparison": {
            "totalCandidates": result.total_candidates,
            "analysisCount": len(result.analyses),
            "analyses": [
                {"id": a.id, "title": a.title, "date": a.date} for a in result.analyses
            ],
            "jobTitle": result.job_title,
            "requirements": result.requirements,
            "scoreDistribution": result.score_distribution,
            "candidates": [
                {
                    "name": c.name,
                    "score": c.score,
                    "overall": c.overall,
                    "requirements": [r.model_dump() for r in c.requirements],
                    "strengths": c.strengths,
                    "concerns": c.concerns,
                    "analysisId": c.analysis_id,
                    "analysisTitle": c.analysis_title,
                    "analysisDate": c.analysis_date,
                }
                for c in result.candidates
            ],
        },
    }


@router.post("/compare")
async def compare_analyses(
    body: CompareBody, services: ServicesDep, user: CurrentUser
) -> dict[str, Any]:
    """Rank candidates from 2-5 analyses together."""
    result = await services.comparison.compare(
        user.id, body.analysis_ids, allow_mixed=body.skip_requirements_check
    )
    return comparison_payload(result)


@router.get("/{analysis_id}/results")
async def read_results(
    analysis_id: str, services: ServicesDep, user: CurrentUser
) -> dict[str, Any]:
    title, results = await _load_results(services, user.id, analysis_id)
    return {
        "ok": True,
        "analysisId": analysis_id,
        "title": title,
        "results": [r.to_public() for r in results],
    }


@router.get("/{analysis_id}/report")
async def download_report(
    analysis_id: str,
    services: ServicesDep,
    user: CurrentUser,
    fmt: Annotated[Literal["csv", "xlsx"], Query(alias="format")] = "xlsx",
) -> FileResponse:
    """Write the report of a stored analysis and send it as a download."""
    title, results = await _load_results(services, user.id, analysis_id)
    paths = await asyncio.to_thread(
        services.report_writer.write, analysis_id, title, results, None, (fmt,)
    )
    path = paths[0]
    return FileResponse(path, media_type=MEDIA_TYPES[fmt], filename=path.name)
