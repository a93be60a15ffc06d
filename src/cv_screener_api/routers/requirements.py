"""Suggest must-have requirements for a job description."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter

from cv_screener_api.deps import CurrentUser, ServicesDep
from cv_screener_api.schemas import ExtractRequirementsBody

router = APIRouter(tags=["requirements"])


@router.post("/requirements/extract")
async def extract_requirements(
    body: ExtractRequirementsBody, services: ServicesDep, user: CurrentUser
) -> dict[str, Any]:
    requirements = await services.requirements_extractor.extract(body.job_text)
    return {"ok": True, "requirements": [r.model_dump() for r in requirements]}
