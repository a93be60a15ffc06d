"""Request bodies of the JSON endpoints (camelCase on the wire)."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from cv_screener_core.models.summary import SummaryItem


class _Body(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class ExtractRequirementsBody(_Body):
    job_text: str = Field(alias="jobText")


class SummaryBody(_Body):
    name: str
    cv_text: str = Field(alias="cvText")


class StoredSummaryBody(_Body):
    cv_text_hash: str = Field(alias="cvTextHash", min_length=1)
    name: str | None = None


class BatchSummaryItem(_Body):
    name: str
    cv_text: str | None = Field(default=None, alias="cvText")
    cv_text_hash: str | None = Field(default=None, alias="cvTextHash")

    def to_item(self) -> SummaryItem:
        return SummaryItem(name=self.name, cv_text=self.cv_text, cv_text_hash=self.cv_text_hash)


class BatchSummaryBody(_Body):
    items: list[BatchSummaryItem] = Field(min_length=1, max_length=100)


class CompareBody(_Body):
    analysis_ids: list[str] = Field(alias="analysisIds")
    skip_requirements_check: bool = Field(default=False, alias="skipRequirementsCheck")
