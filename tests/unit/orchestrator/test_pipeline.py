"""Tests for the analysis pipeline with stubbed agents."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cv_screener_agents.agents.cv_scorer import build_fallback_result
from cv_screener_agents.orchestrator.pipeline import AnalysisPipeline
from cv_screener_agents.orchestrator.rate_limiter import SlidingWindowRateLimiter
from cv_screener_agents.services.credits import CreditLedger
from cv_screener_core.exceptions import (
    InsufficientCreditsError,
    InvalidRequestError,
    RateLimitExceededError,
)
from cv_screener_core.models.events import AnalysisEvent
from cv_screener_core.state import AnalysisState
from cv_screener_infra.db.repositories.result_repo import ResultRepository
from tests.mocks.mock_factories import (
    REQUIREMENTS,
    make_document,
    make_extracted_cv,
    make_request,
    make_result,
)


async def _extract(state: AnalysisState) -> AnalysisState:
    state.extracted = [
        make_extracted_cv(file_name=d.file_name, name=f"Candidate {i}")
        for i, d in enumerate(state.documents)
    ]
    return state


async def _score_second_fails(state: AnalysisState) -> AnalysisState:
    for i, cv in enumerate(state.extracted):
        if i == 1:
            result = build_fallback_result(cv.candidate_name, REQUIREMENTS, cv.file_name)
        else:
            result = make_result(name=cv.candidate_name, cv_text_hash=cv.text_hash)
        state.results.append(result)
    return state


def _stub_agents(pipeline: AnalysisPipeline, extract: object, score: object) -> None:
    extractor = MagicMock()
    extractor.run = AsyncMock(side_effect=extract)
    scorer = MagicMock()
    scorer.run = AsyncMock(side_effect=score)
    pipeline._build_agents = lambda: (extractor, scorer)  # type: ignore[method-assign]


def _documents(count: int) -> list:
    return [make_document(f"cv{i}.pdf") for i in range(count)]


async def _funded_ledger(
    session_factory: async_sessionmaker[AsyncSession], credits: int = 5
) -> CreditLedger:
    ledger = CreditLedger(session_factory)
    await ledger.add_credits("user-1", credits)
    return ledger


class _Recorder:
    def __init__(self) -> None:
        self.events: list[AnalysisEvent] = []

    async def __call__(self, event: AnalysisEvent) -> None:
        self.events.append(event)

    def named(self, name: str) -> list[AnalysisEvent]:
        return [e for e in self.events if e.event == name]


@pytest.mark.unit
class TestPipelinePrepare:
    """Test up-front validation, rate limiting and charging."""

    async def test_requires_documents(
        self, mock_settings: MagicMock, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        pipeline = AnalysisPipeline(mock_settings, CreditLedger(session_factory), session_factory)
        with pytest.raises(InvalidRequestError, match="at least one CV"):
            await pipeline.prepare(make_request(), [])

    async def test_rejects_too_many_documents(
        self, mock_settings: MagicMock, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        pipeline = AnalysisPipeline(mock_settings, CreditLedger(session_factory), session_factory)
        with pytest.raises(InvalidRequestError, match="At most 10"):
            await pipeline.prepare(make_request(), _documents(11))

    async def test_requires_requirements(
        self, mock_settings: MagicMock, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        pipeline = AnalysisPipeline(mock_settings, CreditLedger(session_factory), session_factory)
        with pytest.raises(InvalidRequestError, match="requirement"):
            await pipeline.prepare(make_request(requirements=[" "]), _documents(1))

    async def test_rejects_long_job_text(
        self, mock_settings: MagicMock, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        mock_settings.max_job_text_chars = 10
        pipeline = AnalysisPipeline(mock_settings, CreditLedger(session_factory), session_factory)
        with pytest.raises(InvalidRequestError, match="exceeds"):
            await pipeline.prepare(make_request(), _documents(1))

    async def test_insufficient_credits(
        self, mock_settings: MagicMock, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        ledger = await _funded_ledger(session_factory, credits=1)
        pipeline = AnalysisPipeline(mock_settings, ledger, session_factory)

        with pytest.raises(InsufficientCreditsError) as exc_info:
            await pipeline.prepare(make_request(), _documents(2))

        assert exc_info.value.required == 2
        assert exc_info.value.available == 1

    async def test_rate_limited(
        self, mock_settings: MagicMock, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        ledger = await _funded_ledger(session_factory)
        pipeline = AnalysisPipeline(
            mock_settings,
            ledger,
            session_factory,
            rate_limiter=SlidingWindowRateLimiter(max_runs=1, window_seconds=600),
        )
        await pipeline.prepare(make_request(analysis_id="a1"), _documents(1))

        with pytest.raises(RateLimitExceededError):
            await pipeline.prepare(make_request(analysis_id="a2"), _documents(1))

    async def test_charges_one_credit_per_cv(
        self, mock_settings: MagicMock, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        ledger = await _funded_ledger(session_factory)
        pipeline = AnalysisPipeline(mock_settings, ledger, session_factory)

        state = await pipeline.prepare(make_request(), _documents(3))

        assert state.credits_deducted == 3
        assert state.balance_after == 2
        assert state.total_count == 3


@pytest.mark.unit
class TestPipelineExecute:
    """Test running stubbed agents through the pipeline."""

    async def test_partial_run_refunds_failed_cv(
        self, mock_settings: MagicMock, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        ledger = await _funded_ledger(session_factory)
        pipeline = AnalysisPipeline(mock_settings, ledger, session_factory)
        _stub_agents(pipeline, _extract, _score_second_fails)
        recorder = _Recorder()

        outcome = await pipeline.run(make_request(), _documents(2), emit=recorder)

        assert outcome.status == "partial"
        assert outcome.credits_deducted == 2
        assert outcome.credits_refunded == 1
        assert outcome.balance_after == 4
        assert outcome.performance is not None

        (complete,) = recorder.named("complete")
        assert complete.data["ok"] is True
        assert len(complete.data["results"]) == 2  # type: ignore[arg-type]
        assert "totalTime" in complete.data["performance"]  # type: ignore[operator]

        async with session_factory() as session:
            rows = await ResultRepository(session).list_for_analysis("user-1", "analysis-1")
        assert [r.name for r in rows] == ["Candidate 0"]

    async def test_all_failed_is_failed_status(
        self, mock_settings: MagicMock, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        async def score_all_fail(state: AnalysisState) -> AnalysisState:
            state.results = [
                build_fallback_result(cv.candidate_name, REQUIREMENTS) for cv in state.extracted
            ]
            return state

        ledger = await _funded_ledger(session_factory)
        pipeline = AnalysisPipeline(mock_settings, ledger, session_factory)
        _stub_agents(pipeline, _extract, score_all_fail)

        outcome = await pipeline.run(make_request(), _documents(2))

        assert outcome.status == "failed"
        assert outcome.credits_refunded == 2
        assert outcome.balance_after == 5

    async def test_crash_refunds_everything(
        self, mock_settings: MagicMock, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        async def crash(state: AnalysisState) -> AnalysisState:
            msg = "disk on fire"
            raise RuntimeError(msg)

        ledger = await _funded_ledger(session_factory)
        pipeline = AnalysisPipeline(mock_settings, ledger, session_factory)
        _stub_agents(pipeline, crash, _score_second_fails)
        recorder = _Recorder()

        outcome = await pipeline.run(make_request(), _documents(2), emit=recorder)

        assert outcome.status == "failed"
        assert outcome.credits_refunded == 2
        assert outcome.balance_after == 5
        (error,) = recorder.named("error")
        assert error.data == {"error": "Analysis failed unexpectedly", "code": "INTERNAL_ERROR"}
        assert outcome.errors == ["pipeline: disk on fire"]

    async def test_timeout_reports_timeout_code(
        self, mock_settings: MagicMock, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        async def slow(state: AnalysisState) -> AnalysisState:
            await asyncio.sleep(5)
            return state

        mock_settings.analysis_timeout_seconds = 0.05
        ledger = await _funded_ledger(session_factory)
        pipeline = AnalysisPipeline(mock_settings, ledger, session_factory)
        _stub_agents(pipeline, slow, _score_second_fails)
        recorder = _Recorder()

        outcome = await pipeline.run(make_request(), _documents(1), emit=recorder)

        assert outcome.status == "failed"
        assert recorder.named("error")[0].data["code"] == "TIMEOUT"
        assert outcome.balance_after == 5

    @pytest.mark.usefixtures("patched_llm")
    async def test_export_writes_reports(
        self, mock_settings: MagicMock, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        ledger = await _funded_ledger(session_factory)
        pipeline = AnalysisPipeline(mock_settings, ledger, session_factory)
        _stub_agents(pipeline, _extract, _score_second_fails)

        outcome = await pipeline.run(make_request(export_reports=True), _documents(2))

        assert [f.rsplit(".", 1)[1] for f in outcome.output_files] == ["csv", "xlsx"]
        assert outcome.email_sent is False
