"""Candidate summary models."""

from __future__ import annotations

from pydantic import BaseModel, Field


class CandidateSummary(BaseModel):
    """Short structured summary of a candidate."""

    name: str = Field(description="Candidate name")
    summary: str = Field(description="Roughly 200-word profile summary")
    highlights: list[str] = Field(default_factory=list, description="Key qualifications")
    cached: bool = Field(default=False, description="Served from the summary cache")


class SummaryItem(BaseModel):
    """One entry of a batch summary request: raw text or a stored excerpt hash."""

    name: str
    cv_text: str | None = Field(default=None, repr=False)
    cv_text_hash: str | None = None


class SummaryBatchEntry(BaseModel):
    """Per-candidate outcome of a batch summary request."""

    name: str
    summary: CandidateSummary | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.summary is not None
