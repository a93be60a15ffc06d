"""Request-scoped analysis pipeline wrapped in the credit ledger."""

from __future__ import annotations

import asyncio
import time
from typing import TYPE_CHECKING

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cv_screener_agents.agents.cv_extractor import CVExtractorAgent
from cv_screener_agents.agents.cv_scorer import CVScorerAgent
from cv_screener_agents.agents.notifier import NotifierAgent
from cv_screener_agents.agents.report_writer import ReportWriterAgent
from cv_screener_agents.observability import (
    PerformanceTimer,
    bind_analysis_context,
    clear_analysis_context,
    record_analysis_outcome,
    trace_analysis_run,
)
from cv_screener_agents.orchestrator.rate_limiter import (
    SlidingWindowRateLimiter,
    ip_key,
    user_key,
)
from cv_screener_agents.services.analysis_cache import AnalysisCache
from cv_screener_agents.services.credits import CreditLedger
from cv_screener_core.exceptions import CreditLedgerError, CVScreenerError, InvalidRequestError
from cv_screener_core.models.analysis import AnalysisOutcome, AnalysisRequest, CVDocument
from cv_screener_core.models.events import EventSink
from cv_screener_core.models.run import AgentError
from cv_screener_core.state import AnalysisState
from cv_screener_infra.db.repositories.cv_text_repo import CVTextStore
from cv_screener_infra.db.repositories.result_repo import ResultRepository, to_result_model

if TYPE_CHECKING:
    from cv_screener_core.config.settings import Settings

logger = structlog.get_logger()

TIMEOUT_ERROR_CODE = "TIMEOUT"


class AnalysisPipeline:
    """Validate, charge, extract, score, persist and reconcile one analysis.

    ``prepare`` does everything that can be rejected up front (validation,
    rate limiting, credit check and deduction) so that HTTP callers can
    answer with a plain error status. ``execute`` then runs the agents and
    reports progress through the state's event sink.
    """

    def __init__(
        self,
        settings: Settings,
        ledger: CreditLedger,
        session_factory: async_sessionmaker[AsyncSession],
        analysis_cache: AnalysisCache | None = None,
        cv_text_store: CVTextStore | None = None,
        rate_limiter: SlidingWindowRateLimiter | None = None,
    ) -> None:
        """Initialize with settings and the shared services."""
        self.settings = settings
        self._ledger = ledger
        self._session_factory = session_factory
        self._cache = analysis_cache
        self._cv_text_store = cv_text_store
        self._rate_limiter = rate_limiter or SlidingWindowRateLimiter(
            max_runs=settings.rate_limit_max_runs,
            window_seconds=settings.rate_limit_window_seconds,
        )

    async def run(
        self,
        request: AnalysisRequest,
        documents: list[CVDocument],
        emit: EventSink | None = None,
    ) -> AnalysisOutcome:
        """Prepare and execute an analysis in one call."""
        state = await self.prepare(request, documents)
        return await self.execute(state, emit)

    def validate(self, request: AnalysisRequest, documents: list[CVDocument]) -> None:
        """Reject requests the pipeline cannot run.

        Raises:
            InvalidRequestError: On missing CVs, requirements or oversized input.
        """
        if not documents:
            msg = "Upload at least one CV"
            raise InvalidRequestError(msg)
        if len(documents) > self.settings.max_cvs_per_analysis:
            msg = f"At most {self.settings.max_cvs_per_analysis} CVs can be analysed at once"
            raise InvalidRequestError(msg)
        if not request.requirements:
            msg = "Select at least one requirement"
            raise InvalidRequestError(msg)
        if len(request.job_text) > self.settings.max_job_text_chars:
            msg = f"Job description exceeds {self.settings.max_job_text_chars} characters"
            raise InvalidRequestError(msg)

    async def prepare(
        self, request: AnalysisRequest, documents: list[CVDocument]
    ) -> AnalysisState:
        """Validate, rate-limit and charge one credit per CV.

        Raises:
            InvalidRequestError: If the request is malformed.
            RateLimitExceededError: If the user or IP started too many runs.
            InsufficientCreditsError: If the balance cannot cover the CVs.
        """
        self.validate(request, documents)
        self._rate_limiter.acquire(user_key(request.user_id), ip_key(request.client_ip))

        required = len(documents)
        await self._ledger.require_credits(request.user_id, required)
        deduction = await self._ledger.deduct_credits(
            request.user_id,
            required,
            request.analysis_id,
            description=f"Analysis of {required} CV(s): {request.title or 'untitled'}",
        )

        state = AnalysisState(request=request, documents=list(documents))
        state.credits_deducted = deduction.deducted
        state.balance_after = deduction.balance_after
        logger.info(
            "analysis_prepared",
            analysis_id=request.analysis_id,
            user_id=request.user_id,
            cv_count=required,
            requirements=len(request.requirements),
        )
        return state

    async def execute(
        self, state: AnalysisState, emit: EventSink | None = None
    ) -> AnalysisOutcome:
        """Run the agents on a prepared state; never raises for agent failures.

        A fatal error refunds every credit still charged to the analysis and
        is reported through an ``error`` event.
        """
        if emit is not None:
            state.emit = emit
        timer = PerformanceTimer()
        start = time.monotonic()
        bind_analysis_context(state.analysis_id, state.request.user_id)

        try:
            logger.info("analysis_start", cv_count=state.total_count)
            async with trace_analysis_run(state) as root_span:
                try:
                    await asyncio.wait_for(
                        self._run_steps(state, timer),
                        timeout=self.settings.analysis_timeout_seconds,
                    )
                except Exception as e:
                    outcome = await self._fail(state, timer, e)
                    record_analysis_outcome(root_span, outcome.status, state)
                    return outcome

                status = self._status(state)
                performance = timer.summary(len(state.results), state.total_count)
                await state.send(
                    "complete",
                    ok=True,
                    results=[r.to_public() for r in state.sorted_results()],
                    performance=performance.model_dump(by_alias=True),
                )
                record_analysis_outcome(root_span, status, state)

            self._log_summary(state, time.monotonic() - start)
            return state.build_outcome(status, performance)
        finally:
            clear_analysis_context()

    def _build_agents(self) -> tuple[CVExtractorAgent, CVScorerAgent]:
        return (
            CVExtractorAgent(self.settings, cv_text_store=self._cv_text_store),
            CVScorerAgent(self.settings, cache=self._cache),
        )

    async def _run_steps(self, state: AnalysisState, timer: PerformanceTimer) -> None:
        extractor, scorer = self._build_agents()

        timer.start_phase("extraction")
        await extractor.run(state)
        timer.end_phase("extraction")

        timer.start_phase("ai_processing")
        await scorer.run(state)
        timer.end_phase("ai_processing")

        await self._persist_results(state)
        await self._refund_failed(state)

        if state.request.export_reports or state.request.notify_email:
            await self._export(state)

    async def _persist_results(self, state: AnalysisState) -> None:
        """Store successful results; a storage failure does not fail the run."""
        rows = [
            to_result_model(r, state.request.user_id, state.analysis_id, state.request.title)
            for r in state.results
            if not r.failed
        ]
        if not rows:
            return
        try:
            async with self._session_factory() as session, session.begin():
                await ResultRepository(session).add_many(rows)
        except Exception as e:
            self._record_pipeline_error(state, e)
            return
        logger.info("analysis_results_saved", count=len(rows))

    async def _refund_failed(self, state: AnalysisState) -> None:
        """Give back one credit per CV that could not be scored."""
        failed = len(state.failed_results)
        if failed == 0:
            return
        try:
            refund = await self._ledger.refund_analysis(
                state.request.user_id,
                state.analysis_id,
                amount=failed,
                description=f"Refund for {failed} failed CV(s)",
            )
        except CreditLedgerError as e:
            self._record_pipeline_error(state, e)
            return
        state.credits_refunded += refund.refunded
        state.balance_after = refund.balance_after

    async def _refund_remaining(self, state: AnalysisState) -> None:
        if state.credits_deducted - state.credits_refunded <= 0:
            return
        try:
            refund = await self._ledger.refund_analysis(
                state.request.user_id,
                state.analysis_id,
                description="Refund for failed analysis",
            )
        except CreditLedgerError as e:
            self._record_pipeline_error(state, e)
            return
        state.credits_refunded += refund.refunded
        state.balance_after = refund.balance_after

    async def _export(self, state: AnalysisState) -> None:
        try:
            await ReportWriterAgent(self.settings).run(state)
        except (OSError, CVScreenerError) as e:
            self._record_pipeline_error(state, e)
            return
        await NotifierAgent(self.settings).run(state)

    async def _fail(
        self, state: AnalysisState, timer: PerformanceTimer, error: Exception
    ) -> AnalysisOutcome:
        if isinstance(error, TimeoutError):
            message = (
                f"Analysis timed out after {self.settings.analysis_timeout_seconds} seconds"
            )
            code = TIMEOUT_ERROR_CODE
        elif isinstance(error, CVScreenerError):
            message = str(error)
            code = error.error_code
        else:
            message = "Analysis failed unexpectedly"
            code = CVScreenerError.error_code

        state.errors.append(
            AgentError(
                agent_name="pipeline",
                error_type=type(error).__name__,
                error_message=str(error) or message,
                is_fatal=True,
            )
        )
        logger.error("analysis_failed", error=str(error), error_type=type(error).__name__)

        await self._refund_remaining(state)
        await state.send("error", error=message, code=code)
        return state.build_outcome(
            "failed", timer.summary(len(state.results), state.total_count)
        )

    @staticmethod
    def _status(state: AnalysisState) -> str:
        failed = len(state.failed_results)
        if failed == 0:
            return "success"
        if failed >= len(state.results):
            return "failed"
        return "partial"

    @staticmethod
    def _record_pipeline_error(state: AnalysisState, error: Exception) -> None:
        state.errors.append(
            AgentError(
                agent_name="pipeline",
                error_type=type(error).__name__,
                error_message=str(error),
            )
        )
        logger.error("pipeline_step_error", error_type=type(error).__name__, error=str(error))

    @staticmethod
    def _log_summary(state: AnalysisState, duration: float) -> None:
        """Log a structured cost and performance summary."""
        logger.info(
            "analysis_summary",
            total_tokens=state.total_tokens,
            total_cost_usd=round(state.total_cost_usd, 4),
            duration_seconds=round(duration, 2),
            scored=len(state.results) - len(state.failed_results),
            failed=len(state.failed_results),
            credits_refunded=state.credits_refunded,
            errors=len(state.errors),
        )
