"""Domain models for cv-screener."""

from cv_screener_core.models.analysis import (
    AnalysisOutcome,
    AnalysisRequest,
    CandidateResult,
    CVDocument,
    ExtractedCV,
    PerformanceSummary,
    Requirement,
)
from cv_screener_core.models.comparison import (
    AnalysisInfo,
    ComparedCandidate,
    ComparisonResult,
    RequirementScore,
)
from cv_screener_core.models.credits import (
    CreditBalance,
    CreditCheck,
    CreditMovement,
    CreditTransaction,
    CreditType,
    DeductionResult,
    RefundResult,
    TransactionType,
)
from cv_screener_core.models.events import AnalysisEvent, EventSink
from cv_screener_core.models.run import AgentError
from cv_screener_core.models.summary import CandidateSummary, SummaryBatchEntry, SummaryItem
from cv_screener_core.models.template import JobTemplate, TemplateCreate

__all__ = [
    "AgentError",
    "AnalysisEvent",
    "AnalysisInfo",
    "AnalysisOutcome",
    "AnalysisRequest",
    "CVDocument",
    "CandidateResult",
    "CandidateSummary",
    "ComparedCandidate",
    "ComparisonResult",
    "CreditBalance",
    "CreditCheck",
    "CreditMovement",
    "CreditTransaction",
    "CreditType",
    "DeductionResult",
    "EventSink",
    "ExtractedCV",
    "JobTemplate",
    "PerformanceSummary",
    "RefundResult",
    "Requirement",
    "RequirementScore",
    "SummaryBatchEntry",
    "SummaryItem",
    "TemplateCreate",
    "TransactionType",
]
