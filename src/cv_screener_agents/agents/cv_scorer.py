"""CV scorer agent: scores extracted CVs against the selected requirements."""

from __future__ import annotations

import asyncio
import math
import time
from typing import TYPE_CHECKING

import structlog
from pydantic import BaseModel, Field

from cv_screener_agents.agents.base import BaseAgent, gather_or_cancel
from cv_screener_agents.observability.tracing import traced_agent
from cv_screener_agents.prompts.cv_scorer import CV_SCORER_SYSTEM, CV_SCORER_USER
from cv_screener_agents.services.analysis_cache import AnalysisCache
from cv_screener_agents.tools.cv_text import build_cache_key
from cv_screener_core.constants import (
    FAILED_ANALYSIS_CONCERN,
    MAX_CONCERNS,
    MAX_OVERALL_SCORE,
    MAX_REQUIREMENT_SCORE,
    MAX_STRENGTHS,
)
from cv_screener_core.exceptions import CacheKeyError, CostLimitExceededError
from cv_screener_core.models.analysis import CandidateResult, ExtractedCV
from cv_screener_core.state import AnalysisState

if TYPE_CHECKING:
    from cv_screener_core.config.settings import Settings

logger = structlog.get_logger()


class RequirementScoreItem(BaseModel):
    """Model output for one requirement."""

    requirement: str = Field(description="Requirement text, exactly as given")
    score: float = Field(description="Evidence score from 0 to 100")


class CVAssessment(BaseModel):
    """Structured assessment returned by the model."""

    scores: list[RequirementScoreItem] = Field(default_factory=list)
    overall: float = Field(description="Overall fit from 0 to 10")
    strengths: list[str] = Field(default_factory=list)
    concerns: list[str] = Field(default_factory=list)


def _clamp(value: float, low: float, high: float) -> float:
    if math.isnan(value):
        return low
    return max(low, min(high, value))


def normalize_assessment(
    assessment: CVAssessment,
    requirements: list[str],
    name: str,
) -> CandidateResult:
    """Map model output onto the requirement list and clamp every score.

    Requirements the model skipped score 0. Overall is kept to one decimal.
    """
    by_text = {item.requirement.strip().lower(): item.score for item in assessment.scores}
    scores: dict[str, int] = {}
    for requirement in requirements:
        raw = by_text.get(requirement.strip().lower(), 0.0)
        scores[requirement] = int(round(_clamp(raw, 0, MAX_REQUIREMENT_SCORE)))

    return CandidateResult(
        name=name,
        overall=round(_clamp(assessment.overall, 0.0, MAX_OVERALL_SCORE), 1),
        scores=scores,
        strengths=[s.strip() for s in assessment.strengths if s.strip()][:MAX_STRENGTHS],
        concerns=[c.strip() for c in assessment.concerns if c.strip()][:MAX_CONCERNS],
    )


def build_fallback_result(
    name: str,
    requirements: list[str],
    file_name: str | None = None,
    cv_text_hash: str | None = None,
) -> CandidateResult:
    """Result reported for a CV that could not be analysed."""
    return CandidateResult(
        name=name,
        overall=0.0,
        scores={requirement: 0 for requirement in requirements},
        strengths=[],
        concerns=[FAILED_ANALYSIS_CONCERN],
        cv_text_hash=cv_text_hash,
        file_name=file_name,
        failed=True,
    )


class CVScorerAgent(BaseAgent):
    """Score every extracted CV with bounded concurrency."""

    agent_name = "cv_scorer"

    def __init__(self, settings: Settings, cache: AnalysisCache | None = None) -> None:
        """Initialize with settings and an optional result cache."""
        super().__init__(settings)
        self._cache = cache

    @traced_agent("cv_scorer")
    async def run(self, state: AnalysisState) -> AnalysisState:
        """Score all extracted CVs, emitting progress and result events."""
        self._log_start({"cv_count": len(state.extracted)})
        start = time.monotonic()

        semaphore = asyncio.Semaphore(self.settings.max_concurrent_analyses)
        total = state.total_count
        processed = len(state.results)

        async def _score_one(cv: ExtractedCV) -> None:
            nonlocal processed
            async with semaphore:
                await state.send(
                    "progress",
                    processed=processed,
                    total=total,
                    currentFile=cv.file_name,
                    status="analyzing",
                )
                result = await self.score_cv(
                    cv, state.request.requirements, state.request.job_text, state
                )
                processed += 1
                state.results.append(result)
                payload: dict[str, object] = {
                    "result": result.to_public(),
                    "processed": processed,
                    "total": total,
                }
                if result.failed:
                    payload["error"] = FAILED_ANALYSIS_CONCERN
                await state.send("result", **payload)

        await gather_or_cancel(*(_score_one(cv) for cv in state.extracted))
        state.results.sort(key=lambda r: r.overall, reverse=True)

        self._log_end(
            time.monotonic() - start,
            {
                "scored": len(state.results),
                "failed": len(state.failed_results),
                "cached": sum(1 for r in state.results if r.cached),
            },
        )
        return state

    async def score_cv(
        self,
        cv: ExtractedCV,
        requirements: list[str],
        job_text: str,
        state: AnalysisState | None = None,
    ) -> CandidateResult:
        """Score one CV: cache lookup, then the model, then cache store.

        Model failures yield the fallback result. A blown cost limit is
        re-raised since it ends the analysis.
        """
        cache_key = self._cache_key(cv, requirements, job_text)

        cached = await self._cache_get(cache_key)
        if cached is not None:
            return cached.model_copy(
                update={
                    "name": cv.candidate_name,
                    "file_name": cv.file_name,
                    "cv_text_hash": cv.text_hash,
                    "cached": True,
                }
            )

        try:
            assessment = await self._call_llm(
                messages=[
                    {
                        "role": "user",
                        "content": CV_SCORER_USER.format(
                            job_text=job_text or "(not provided)",
                            requirements="\n".join(f"- {r}" for r in requirements),
                            cv_text=cv.excerpt,
                        ),
                    }
                ],
                model=self.settings.scoring_model,
                response_model=CVAssessment,
                state=state,
                system=CV_SCORER_SYSTEM,
            )
        except CostLimitExceededError:
            raise
        except Exception as e:
            if state is not None:
                self._record_error(state, e, file_name=cv.file_name)
            return build_fallback_result(
                cv.candidate_name, requirements, cv.file_name, cv.text_hash
            )

        result = normalize_assessment(assessment, requirements, cv.candidate_name)
        result = result.model_copy(update={"file_name": cv.file_name, "cv_text_hash": cv.text_hash})
        await self._cache_put(cache_key, result)
        return result

    def _cache_key(self, cv: ExtractedCV, requirements: list[str], job_text: str) -> str | None:
        if self._cache is None:
            return None
        try:
            return build_cache_key(cv.excerpt, requirements, job_text)
        except CacheKeyError:
            return None

    async def _cache_get(self, key: str | None) -> CandidateResult | None:
        if self._cache is None or key is None:
            return None
        try:
            return await self._cache.get(key)
        except Exception as e:
            logger.warning("analysis_cache_read_failed", error=str(e))
            return None

    async def _cache_put(self, key: str | None, result: CandidateResult) -> None:
        if self._cache is None or key is None:
            return
        try:
            await self._cache.put(key, result)
        except Exception as e:
            logger.warning("analysis_cache_write_failed", error=str(e))
