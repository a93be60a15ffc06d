"""Analysis state: mutable state passed through the analysis pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field

from cv_screener_core.models.analysis import (
    AnalysisOutcome,
    AnalysisRequest,
    CandidateResult,
    CVDocument,
    ExtractedCV,
    PerformanceSummary,
)
from cv_screener_core.models.events import AnalysisEvent, EventSink, discard_event
from cv_screener_core.models.run import AgentError


@dataclass
class AnalysisState:
    """Mutable state of one analysis run."""

    request: AnalysisRequest
    documents: list[CVDocument] = field(default_factory=list)
    emit: EventSink = discard_event

    # Step outputs
    extracted: list[ExtractedCV] = field(default_factory=list)
    failed_files: list[str] = field(default_factory=list)
    results: list[CandidateResult] = field(default_factory=list)
    output_files: list[str] = field(default_factory=list)
    email_sent: bool = False

    # Credits
    credits_deducted: int = 0
    credits_refunded: int = 0
    balance_after: int | None = None

    # Cross-cutting
    errors: list[AgentError] = field(default_factory=list)
    total_tokens: int = 0
    total_cost_usd: float = 0.0

    @property
    def analysis_id(self) -> str:
        """Identifier of the analysis this state belongs to."""
        return self.request.analysis_id

    @property
    def total_count(self) -> int:
        """Number of uploaded CVs."""
        return len(self.documents)

    @property
    def failed_results(self) -> list[CandidateResult]:
        """Results produced by the scoring fallback."""
        return [r for r in self.results if r.failed]

    async def send(self, event: str, **data: object) -> None:
        """Emit an event to whoever is listening."""
        await self.emit(AnalysisEvent(event=event, data=data))  # type: ignore[arg-type]

    def sorted_results(self) -> list[CandidateResult]:
        """Results ordered by overall score, best first."""
        return sorted(self.results, key=lambda r: r.overall, reverse=True)

    def build_outcome(
        self,
        status: str,
        performance: PerformanceSummary | None = None,
    ) -> AnalysisOutcome:
        """Build an AnalysisOutcome from current state."""
        return AnalysisOutcome(
            analysis_id=self.analysis_id,
            status=status,
            results=self.sorted_results(),
            performance=performance,
            credits_deducted=self.credits_deducted,
            credits_refunded=self.credits_refunded,
            balance_after=self.balance_after,
            total_tokens=self.total_tokens,
            estimated_cost_usd=self.total_cost_usd,
            output_files=list(self.output_files),
            email_sent=self.email_sent,
            errors=[f"{e.agent_name}: {e.error_message}" for e in self.errors],
        )
