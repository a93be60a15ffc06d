"""Tests for the requirements extractor agent."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from cv_screener_agents.agents.requirements_extractor import (
    ExtractedRequirements,
    RequirementsExtractorAgent,
    clean_requirements,
)
from cv_screener_core.constants import FALLBACK_REQUIREMENTS
from cv_screener_core.exceptions import InvalidRequestError, LLMError
from tests.mocks.mock_factories import JOB_TEXT


@pytest.mark.unit
class TestCleanRequirements:
    """Test requirement clean-up."""

    def test_strips_bullets_and_duplicates(self) -> None:
        assert clean_requirements(["  - Python ", "python", "", "SQL"]) == ["Python", "SQL"]

    def test_caps_count(self) -> None:
        assert len(clean_requirements([f"Skill {i}" for i in range(10)])) == 7


@pytest.mark.unit
@pytest.mark.usefixtures("patched_llm")
class TestRequirementsExtractorAgent:
    """Test extraction and its guards."""

    async def test_short_text_rejected(self, mock_settings: MagicMock) -> None:
        agent = RequirementsExtractorAgent(mock_settings)
        with pytest.raises(InvalidRequestError, match="at least"):
            await agent.extract("too short")

    async def test_long_text_rejected(self, mock_settings: MagicMock) -> None:
        mock_settings.max_job_text_chars = 100
        agent = RequirementsExtractorAgent(mock_settings)
        with pytest.raises(InvalidRequestError, match="exceeds"):
            await agent.extract("x" * 200)

    async def test_extract_numbers_requirements(self, mock_settings: MagicMock) -> None:
        agent = RequirementsExtractorAgent(mock_settings)
        agent._call_llm = AsyncMock(  # type: ignore[method-assign]
            return_value=ExtractedRequirements(requirements=["Python", "PostgreSQL", "python"])
        )

        requirements = await agent.extract(JOB_TEXT)

        assert [(r.id, r.text) for r in requirements] == [("1", "Python"), ("2", "PostgreSQL")]
        assert all(r.selected is False for r in requirements)

    async def test_empty_answer_uses_fallback(self, mock_settings: MagicMock) -> None:
        agent = RequirementsExtractorAgent(mock_settings)
        agent._call_llm = AsyncMock(return_value=ExtractedRequirements())  # type: ignore[method-assign]
        requirements = await agent.extract(JOB_TEXT)
        assert [r.text for r in requirements] == FALLBACK_REQUIREMENTS

    async def test_model_failure_raises_llm_error(self, mock_settings: MagicMock) -> None:
        agent = RequirementsExtractorAgent(mock_settings)
        agent._call_llm = AsyncMock(side_effect=RuntimeError("overloaded"))  # type: ignore[method-assign]
        with pytest.raises(LLMError, match="overloaded"):
            await agent.extract(JOB_TEXT)
