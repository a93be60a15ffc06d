"""Tests for the CV extractor agent."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from cv_screener_agents.agents.cv_extractor import CVExtractorAgent
from cv_screener_agents.tools.cv_text import hash_text
from cv_screener_core.exceptions import InvalidFileError
from cv_screener_core.models.events import AnalysisEvent
from cv_screener_core.state import AnalysisState
from tests.mocks.mock_factories import CV_TEXT, make_document, make_request


def _parser(by_name: dict[str, object]) -> MagicMock:
    async def extract_bytes(data: bytes, file_name: str) -> str:
        value = by_name[file_name]
        if isinstance(value, Exception):
            raise value
        return str(value)

    parser = MagicMock()
    parser.extract_bytes = AsyncMock(side_effect=extract_bytes)
    return parser


@pytest.mark.unit
@pytest.mark.usefixtures("patched_llm")
class TestCVExtractorAgent:
    """Test extraction, anonymization and failure handling."""

    async def test_extract_anonymizes_and_stores(self, mock_settings: MagicMock) -> None:
        store = MagicMock()
        store.save = AsyncMock()
        agent = CVExtractorAgent(
            mock_settings, cv_text_store=store, pdf_parser=_parser({"jane.pdf": CV_TEXT})
        )
        state = AnalysisState(request=make_request())

        extracted = await agent.extract(make_document("jane.pdf"), state)

        assert extracted.candidate_name == "Jane Marie Doe"
        assert "jane.doe@example.com" not in extracted.anonymized_text
        assert "[EMAIL]" in extracted.anonymized_text
        assert extracted.text_hash == hash_text(extracted.excerpt)
        store.save.assert_awaited_once_with(
            extracted.text_hash, extracted.excerpt, "Jane Marie Doe"
        )

    async def test_store_failure_is_not_fatal(self, mock_settings: MagicMock) -> None:
        store = MagicMock()
        store.save = AsyncMock(side_effect=RuntimeError("db down"))
        agent = CVExtractorAgent(
            mock_settings, cv_text_store=store, pdf_parser=_parser({"jane.pdf": CV_TEXT})
        )
        state = AnalysisState(request=make_request())
        extracted = await agent.extract(make_document("jane.pdf"), state)
        assert extracted.file_name == "jane.pdf"

    async def test_run_reports_unreadable_files(self, mock_settings: MagicMock) -> None:
        events: list[AnalysisEvent] = []

        async def sink(event: AnalysisEvent) -> None:
            events.append(event)

        parser = _parser({"good.pdf": CV_TEXT, "bad.pdf": InvalidFileError("Not a valid PDF")})
        agent = CVExtractorAgent(mock_settings, pdf_parser=parser)
        state = AnalysisState(
            request=make_request(),
            documents=[make_document("good.pdf"), make_document("bad.pdf")],
            emit=sink,
        )

        await agent.run(state)

        assert [cv.file_name for cv in state.extracted] == ["good.pdf"]
        assert state.failed_files == ["bad.pdf"]
        assert state.results[0].failed is True
        assert state.results[0].name == "bad"
        assert state.errors[0].file_name == "bad.pdf"

        names = [e.event for e in events]
        assert names.count("extraction-progress") == 2
        failed_event = next(e for e in events if e.event == "result")
        assert failed_event.data["error"] == "Not a valid PDF"

    async def test_run_extracts_concurrently_in_upload_order(
        self, mock_settings: MagicMock
    ) -> None:
        mock_settings.max_concurrent_analyses = 2
        active = 0
        peak = 0

        async def extract_bytes(data: bytes, file_name: str) -> str:
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            # Earlier uploads finish later.
            await asyncio.sleep(0.05 if file_name == "first.pdf" else 0.01)
            active -= 1
            return CV_TEXT

        parser = MagicMock()
        parser.extract_bytes = AsyncMock(side_effect=extract_bytes)
        agent = CVExtractorAgent(mock_settings, pdf_parser=parser)
        state = AnalysisState(
            request=make_request(),
            documents=[make_document(n) for n in ("first.pdf", "second.pdf", "third.pdf")],
        )

        await agent.run(state)

        assert peak == 2
        assert [cv.file_name for cv in state.extracted] == ["first.pdf", "second.pdf", "third.pdf"]
