"""Reusable job template models."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from cv_screener_core.constants import MAX_TEMPLATE_REQUIREMENTS, MIN_TEMPLATE_REQUIREMENTS


class TemplateCreate(BaseModel):
    """Payload for saving a job template."""

    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(min_length=1, max_length=255, description="Template title")
    description: str | None = Field(default=None, description="Free-text notes")
    job_file_name: str | None = Field(
        default=None, alias="jobFileName", description="Source job description file"
    )
    requirements: list[str] = Field(description="2-5 must-have requirements")

    @field_validator("title")
    @classmethod
    def _strip_title(cls, value: str) -> str:
        value = value.strip()
        if not value:
            msg = "title must not be blank"
            raise ValueError(msg)
        return value

    @field_validator("requirements")
    @classmethod
    def _check_requirements(cls, value: list[str]) -> list[str]:
        cleaned = [r.strip() for r in value if r and r.strip()]
        if not MIN_TEMPLATE_REQUIREMENTS <= len(cleaned) <= MAX_TEMPLATE_REQUIREMENTS:
            msg = (
                f"templates need {MIN_TEMPLATE_REQUIREMENTS}-{MAX_TEMPLATE_REQUIREMENTS} "
                f"requirements, got {len(cleaned)}"
            )
            raise ValueError(msg)
        return cleaned


class JobTemplate(BaseModel):
    """A stored job template."""

    id: str
    user_id: str
    title: str
    description: str | None = None
    job_file_name: str | None = None
    requirements: list[str]
    usage_count: int = 0
    last_used_at: datetime | None = None
    created_at: datetime
