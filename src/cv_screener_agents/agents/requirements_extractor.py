"""Requirements extractor agent: job description -> must-have requirements."""

from __future__ import annotations

import time

import structlog
from pydantic import BaseModel, Field

from cv_screener_agents.agents.base import BaseAgent
from cv_screener_agents.prompts.requirements_extractor import (
    REQUIREMENTS_SYSTEM,
    REQUIREMENTS_USER,
)
from cv_screener_core.constants import (
    FALLBACK_REQUIREMENTS,
    MAX_EXTRACTED_REQUIREMENTS,
    MIN_JOB_TEXT_CHARS,
)
from cv_screener_core.exceptions import InvalidRequestError, LLMError
from cv_screener_core.models.analysis import Requirement

logger = structlog.get_logger()


class ExtractedRequirements(BaseModel):
    """Structured output of the extraction prompt."""

    requirements: list[str] = Field(
        default_factory=list, description="5-7 concrete must-have requirements"
    )


def clean_requirements(items: list[str]) -> list[str]:
    """Strip, drop blanks and case-insensitive duplicates, cap the count."""
    seen: set[str] = set()
    cleaned: list[str] = []
    for item in items:
        text = " ".join(str(item).split()).strip(" -•*")
        if not text or text.lower() in seen:
            continue
        seen.add(text.lower())
        cleaned.append(text)
    return cleaned[:MAX_EXTRACTED_REQUIREMENTS]


class RequirementsExtractorAgent(BaseAgent):
    """Suggest must-have requirements for the recruiter to choose from."""

    agent_name = "requirements_extractor"

    async def extract(self, job_text: str) -> list[Requirement]:
        """Extract requirements from a job description.

        Raises:
            InvalidRequestError: If the text is too short or too long.
            LLMError: If the model call fails after all retries.
        """
        text = (job_text or "").strip()
        if len(text) < MIN_JOB_TEXT_CHARS:
            msg = f"Job description must be at least {MIN_JOB_TEXT_CHARS} characters"
            raise InvalidRequestError(msg)
        if len(text) > self.settings.max_job_text_chars:
            msg = f"Job description exceeds {self.settings.max_job_text_chars} characters"
            raise InvalidRequestError(msg)

        self._log_start({"job_text_chars": len(text)})
        start = time.monotonic()

        try:
            response = await self._call_llm(
                messages=[{"role": "user", "content": REQUIREMENTS_USER.format(job_text=text)}],
                model=self.settings.extraction_model,
                response_model=ExtractedRequirements,
                system=REQUIREMENTS_SYSTEM,
            )
        except Exception as e:
            msg = f"Requirement extraction failed: {e}"
            raise LLMError(msg) from e

        items = clean_requirements(response.requirements)
        if not items:
            logger.warning("requirements_fallback_used")
            items = list(FALLBACK_REQUIREMENTS)

        self._log_end(time.monotonic() - start, {"requirements": len(items)})
        return [Requirement(id=str(i + 1), text=t) for i, t in enumerate(items)]
