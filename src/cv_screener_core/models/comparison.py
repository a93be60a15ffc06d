"""Models for comparing candidates across analyses."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class AnalysisInfo(BaseModel):
    """One analysis taking part in a comparison."""

    id: str
    title: str | None = None
    date: datetime | None = None
    requirements: list[str] = Field(default_factory=list)


class RequirementScore(BaseModel):
    """Score of a single requirement in the compare view."""

    requirement: str
    score: int
    met: bool


class ComparedCandidate(BaseModel):
    """A candidate row in the combined ranking."""

    name: str
    score: float = Field(description="Overall on a 0-100 scale")
    overall: float
    scores: dict[str, int] = Field(default_factory=dict)
    requirements: list[RequirementScore] = Field(default_factory=list)
    strengths: list[str] = Field(default_factory=list)
    concerns: list[str] = Field(default_factory=list)
    analysis_id: str
    analysis_title: str
    analysis_date: datetime | None = None


class ComparisonResult(BaseModel):
    """Combined ranking of candidates from several analyses."""

    analyses: list[AnalysisInfo]
    warning: str | None = Field(
        default=None, description="Set to 'different_requirements' when sets differ"
    )
    job_title: str | None = None
    requirements: list[str] = Field(default_factory=list)
    total_candidates: int = 0
    score_distribution: dict[str, int] = Field(default_factory=dict)
    candidates: list[ComparedCandidate] = Field(default_factory=list)
