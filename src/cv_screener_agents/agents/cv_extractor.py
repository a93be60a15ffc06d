"""CV extractor agent: PDF text -> anonymized, job-relevant excerpt."""

from __future__ import annotations

import asyncio
import time
from typing import TYPE_CHECKING

import structlog

from cv_screener_agents.agents.base import BaseAgent, gather_or_cancel
from cv_screener_agents.agents.cv_scorer import build_fallback_result
from cv_screener_agents.observability.tracing import traced_agent
from cv_screener_agents.tools.anonymizer import anonymize_cv_text
from cv_screener_agents.tools.cv_text import (
    build_job_relevant_excerpt,
    extract_candidate_name,
    hash_text,
)
from cv_screener_agents.tools.pdf_parser import PDFParser
from cv_screener_core.exceptions import InvalidFileError
from cv_screener_core.models.analysis import CVDocument, ExtractedCV
from cv_screener_core.state import AnalysisState
from cv_screener_infra.db.repositories.cv_text_repo import CVTextStore

if TYPE_CHECKING:
    from cv_screener_core.config.settings import Settings

logger = structlog.get_logger()


class CVExtractorAgent(BaseAgent):
    """Turn uploaded PDFs into anonymized excerpts ready for scoring."""

    agent_name = "cv_extractor"

    def __init__(
        self,
        settings: Settings,
        cv_text_store: CVTextStore | None = None,
        pdf_parser: PDFParser | None = None,
    ) -> None:
        """Initialize with settings, the excerpt store and a PDF parser."""
        super().__init__(settings)
        self._store = cv_text_store
        self._pdf = pdf_parser or PDFParser(
            max_size_mb=settings.max_cv_size_mb,
            max_chars=settings.max_extracted_chars,
        )

    @traced_agent("cv_extractor")
    async def run(self, state: AnalysisState) -> AnalysisState:
        """Extract every uploaded CV.

        Files that cannot be read get a fallback result straight away so the
        client sees them and the credit can be refunded.
        """
        self._log_start({"file_count": state.total_count})
        start = time.monotonic()
        total = state.total_count
        semaphore = asyncio.Semaphore(self.settings.max_concurrent_analyses)
        processed = 0

        async def _extract_one(document: CVDocument) -> ExtractedCV | None:
            nonlocal processed
            async with semaphore:
                extracted: ExtractedCV | None = None
                try:
                    extracted = await self.extract(document, state)
                except InvalidFileError as e:
                    self._record_error(state, e, file_name=document.file_name)
                    state.failed_files.append(document.file_name)
                    fallback = build_fallback_result(
                        extract_candidate_name("", document.file_name),
                        state.request.requirements,
                        file_name=document.file_name,
                    )
                    state.results.append(fallback)
                    await state.send(
                        "result",
                        result=fallback.to_public(),
                        processed=len(state.results),
                        total=total,
                        error=str(e),
                    )
                processed += 1
                await state.send(
                    "extraction-progress",
                    processed=processed,
                    total=total,
                    currentFile=document.file_name,
                )
                return extracted

        outcomes = await gather_or_cancel(*(_extract_one(d) for d in state.documents))
        # Upload order is kept for scoring regardless of completion order.
        state.extracted.extend(cv for cv in outcomes if cv is not None)

        self._log_end(
            time.monotonic() - start,
            {"extracted": len(state.extracted), "failed": len(state.failed_files)},
        )
        return state

    async def extract(self, document: CVDocument, state: AnalysisState) -> ExtractedCV:
        """Extract, anonymize and excerpt a single CV."""
        raw_text = await self._pdf.extract_bytes(document.content, document.file_name)
        candidate_name = extract_candidate_name(raw_text, document.file_name)
        anonymized = anonymize_cv_text(raw_text)
        excerpt = build_job_relevant_excerpt(
            anonymized, state.request.requirements, state.request.job_text
        )
        text_hash = hash_text(excerpt)

        if self._store is not None:
            try:
                await self._store.save(text_hash, excerpt, candidate_name)
            except Exception as e:
                logger.warning(
                    "cv_text_store_failed", file_name=document.file_name, error=str(e)
                )

        logger.debug(
            "cv_extracted",
            file_name=document.file_name,
            raw_chars=len(raw_text),
            excerpt_chars=len(excerpt),
        )
        return ExtractedCV(
            file_name=document.file_name,
            candidate_name=candidate_name,
            anonymized_text=anonymized,
            excerpt=excerpt,
            text_hash=text_hash,
        )
