"""Analysis request, CV and candidate result models."""

from __future__ import annotations

import re
from datetime import UTC, datetime
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator

_ANALYSIS_ID_RE = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


class Requirement(BaseModel):
    """A must-have requirement offered to the recruiter for selection."""

    id: str = Field(description="Position-based identifier ('1', '2', ...)")
    text: str = Field(description="Requirement text")
    selected: bool = Field(default=False, description="Whether the recruiter selected it")


class CVDocument(BaseModel):
    """An uploaded CV file."""

    file_name: str = Field(description="Original upload file name")
    content: bytes = Field(repr=False, description="Raw PDF bytes")

    @property
    def size_bytes(self) -> int:
        """Size of the raw upload."""
        return len(self.content)


class ExtractedCV(BaseModel):
    """Text extracted from one CV, ready for scoring."""

    file_name: str = Field(description="Original upload file name")
    candidate_name: str = Field(description="Name detected in the CV text or file name")
    anonymized_text: str = Field(repr=False, description="CV text after PII redaction")
    excerpt: str = Field(repr=False, description="Job-relevant excerpt sent to the model")
    text_hash: str = Field(description="SHA-256 of the excerpt")


class CandidateResult(BaseModel):
    """Score of one candidate against the selected requirements."""

    name: str = Field(description="Candidate name")
    overall: float = Field(ge=0.0, le=10.0, description="Overall fit on a 0-10 scale")
    scores: dict[str, int] = Field(
        default_factory=dict, description="Requirement text -> score 0-100"
    )
    strengths: list[str] = Field(default_factory=list, description="Up to 3 strengths")
    concerns: list[str] = Field(default_factory=list, description="Up to 3 concerns")
    cv_text_hash: str | None = Field(
        default=None, description="Hash of the stored excerpt, used for summaries"
    )
    file_name: str | None = Field(default=None, description="Source file name")
    cached: bool = Field(default=False, description="Served from the result cache")
    failed: bool = Field(default=False, description="Scoring failed; result is a fallback")

    def to_public(self) -> dict[str, object]:
        """Payload shape sent to API clients."""
        return self.model_dump(mode="json")


class AnalysisRequest(BaseModel):
    """Input of one analysis run."""

    analysis_id: str = Field(
        default_factory=lambda: str(uuid4()), description="Unique analysis identifier"
    )
    user_id: str = Field(description="Authenticated user running the analysis")
    title: str | None = Field(default=None, description="Job title shown in reports")
    job_text: str = Field(default="", description="Job description text")
    requirements: list[str] = Field(description="Selected must-have requirements")
    client_ip: str = Field(default="local", description="Caller IP used for rate limiting")
    notify_email: str | None = Field(
        default=None, description="Send the finished report to this address"
    )
    export_reports: bool = Field(
        default=False, description="Write CSV and Excel reports when the run finishes"
    )
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC), description="When the run was requested"
    )

    @field_validator("analysis_id")
    @classmethod
    def _check_analysis_id(cls, value: str) -> str:
        """Ids end up in report file names; keep them to a safe alphabet."""
        if not _ANALYSIS_ID_RE.match(value):
            msg = "analysis_id may only contain letters, digits, - and _"
            raise ValueError(msg)
        return value

    @field_validator("requirements")
    @classmethod
    def _strip_requirements(cls, value: list[str]) -> list[str]:
        """Drop blank requirements and surrounding whitespace."""
        return [r.strip() for r in value if r and r.strip()]


class PerformanceSummary(BaseModel):
    """Timing block of the 'complete' event (milliseconds)."""

    total_time: int = Field(serialization_alias="totalTime")
    processed_count: int = Field(serialization_alias="processedCount")
    total_count: int = Field(serialization_alias="totalCount")
    extraction_time: int = Field(serialization_alias="extractionTime")
    ai_processing_time: int = Field(serialization_alias="aiProcessingTime")


class AnalysisOutcome(BaseModel):
    """Summary of a finished analysis run."""

    analysis_id: str
    status: str = Field(description="success, partial or failed")
    results: list[CandidateResult] = Field(default_factory=list)
    performance: PerformanceSummary | None = None
    credits_deducted: int = 0
    credits_refunded: int = 0
    balance_after: int | None = None
    total_tokens: int = 0
    estimated_cost_usd: float = 0.0
    output_files: list[str] = Field(default_factory=list)
    email_sent: bool = False
    errors: list[str] = Field(default_factory=list)
