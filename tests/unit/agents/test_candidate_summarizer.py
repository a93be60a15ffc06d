"""Tests for the candidate summarizer agent."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from cv_screener_agents.agents.candidate_summarizer import (
    CandidateSummarizerAgent,
    SummaryResponse,
    summary_cache_key,
)
from cv_screener_core.exceptions import InvalidRequestError, LLMError, NotFoundError
from cv_screener_core.models.summary import SummaryItem
from tests.mocks.fakes import FakeCache
from tests.mocks.mock_factories import CV_TEXT


def _response() -> SummaryResponse:
    return SummaryResponse(
        summary=" Experienced backend engineer. ",
        highlights=["Python", " ", "PostgreSQL", "Leadership", "Testing", "Kubernetes", "Extra"],
    )


def _store(stored: tuple[str, str] | None) -> MagicMock:
    store = MagicMock()
    store.load = AsyncMock(return_value=stored)
    return store


@pytest.mark.unit
@pytest.mark.usefixtures("patched_llm")
class TestCandidateSummarizerAgent:
    """Test summaries, caching and batch handling."""

    async def test_blank_name_rejected(self, mock_settings: MagicMock) -> None:
        with pytest.raises(InvalidRequestError, match="name"):
            await CandidateSummarizerAgent(mock_settings).summarize("  ", CV_TEXT)

    async def test_short_text_rejected(self, mock_settings: MagicMock) -> None:
        with pytest.raises(InvalidRequestError, match="at least"):
            await CandidateSummarizerAgent(mock_settings).summarize("Jane", "short")

    async def test_summary_generated_and_cached(
        self, mock_settings: MagicMock, fake_cache: FakeCache
    ) -> None:
        agent = CandidateSummarizerAgent(mock_settings, cache=fake_cache)
        agent._call_llm = AsyncMock(return_value=_response())  # type: ignore[method-assign]

        first = await agent.summarize("Jane", CV_TEXT)
        second = await agent.summarize("Jane", CV_TEXT)

        assert first.summary == "Experienced backend engineer."
        assert first.highlights == ["Python", "PostgreSQL", "Leadership", "Testing", "Kubernetes"]
        assert first.cached is False
        assert second.cached is True
        assert agent._call_llm.await_count == 1
        assert fake_cache.ttls[summary_cache_key("Jane", CV_TEXT)] == 24 * 3600

    async def test_prompt_uses_anonymized_text(self, mock_settings: MagicMock) -> None:
        agent = CandidateSummarizerAgent(mock_settings)
        agent._call_llm = AsyncMock(return_value=_response())  # type: ignore[method-assign]
        await agent.summarize("Jane", CV_TEXT)
        content = agent._call_llm.call_args.kwargs["messages"][0]["content"]
        assert "jane.doe@example.com" not in content

    async def test_invalid_cache_entry_dropped(
        self, mock_settings: MagicMock, fake_cache: FakeCache
    ) -> None:
        key = summary_cache_key("Jane", CV_TEXT)
        fake_cache.data[key] = "{not json"
        agent = CandidateSummarizerAgent(mock_settings, cache=fake_cache)
        agent._call_llm = AsyncMock(return_value=_response())  # type: ignore[method-assign]

        summary = await agent.summarize("Jane", CV_TEXT)

        assert summary.cached is False
        assert agent._call_llm.await_count == 1

    async def test_model_failure_raises_llm_error(self, mock_settings: MagicMock) -> None:
        agent = CandidateSummarizerAgent(mock_settings)
        agent._call_llm = AsyncMock(side_effect=RuntimeError("down"))  # type: ignore[method-assign]
        with pytest.raises(LLMError, match="Jane"):
            await agent.summarize("Jane", CV_TEXT)

    async def test_summarize_stored_uses_stored_name(self, mock_settings: MagicMock) -> None:
        agent = CandidateSummarizerAgent(
            mock_settings, cv_text_store=_store((CV_TEXT, "Stored Name"))
        )
        agent._call_llm = AsyncMock(return_value=_response())  # type: ignore[method-assign]

        summary = await agent.summarize_stored("hash-1")

        assert summary.name == "Stored Name"

    async def test_summarize_stored_missing(self, mock_settings: MagicMock) -> None:
        agent = CandidateSummarizerAgent(mock_settings, cv_text_store=_store(None))
        with pytest.raises(NotFoundError, match="expired"):
            await agent.summarize_stored("hash-1")

    async def test_summarize_stored_without_store(self, mock_settings: MagicMock) -> None:
        with pytest.raises(NotFoundError):
            await CandidateSummarizerAgent(mock_settings).summarize_stored("hash-1")

    async def test_batch_reports_failures_per_item(self, mock_settings: MagicMock) -> None:
        agent = CandidateSummarizerAgent(
            mock_settings, cv_text_store=_store((CV_TEXT, "Stored Name"))
        )
        agent._call_llm = AsyncMock(return_value=_response())  # type: ignore[method-assign]

        entries = await agent.summarize_batch(
            [
                SummaryItem(name="Jane", cv_text=CV_TEXT),
                SummaryItem(name="Short", cv_text="too short"),
                SummaryItem(name="Kept", cv_text_hash="hash-1"),
            ]
        )

        assert [e.ok for e in entries] == [True, False, True]
        assert entries[1].error is not None
        assert entries[2].summary is not None
        assert entries[2].summary.name == "Kept"
