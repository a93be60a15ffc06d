"""Candidate summarizer agent: short recruiter-facing candidate profiles."""

from __future__ import annotations

import asyncio
import hashlib
import json
from typing import TYPE_CHECKING

import structlog
from pydantic import BaseModel, Field, ValidationError

from cv_screener_agents.agents.base import BaseAgent, gather_or_cancel
from cv_screener_agents.prompts.candidate_summarizer import SUMMARY_SYSTEM, SUMMARY_USER
from cv_screener_agents.tools.anonymizer import anonymize_cv_text
from cv_screener_agents.tools.cv_text import normalize_text
from cv_screener_core.constants import (
    MIN_SUMMARY_TEXT_CHARS,
    SUMMARY_BATCH_CONCURRENCY,
    SUMMARY_CACHE_PREFIX,
    SUMMARY_WORD_TARGET,
)
from cv_screener_core.exceptions import (
    CVScreenerError,
    InvalidRequestError,
    LLMError,
    NotFoundError,
)
from cv_screener_core.interfaces.cache import CacheClient
from cv_screener_core.models.summary import CandidateSummary, SummaryBatchEntry, SummaryItem
from cv_screener_infra.db.repositories.cv_text_repo import CVTextStore

if TYPE_CHECKING:
    from cv_screener_core.config.settings import Settings

logger = structlog.get_logger()

MAX_HIGHLIGHTS = 5


class SummaryResponse(BaseModel):
    """Structured output of the summary prompt."""

    summary: str = Field(description="Plain-prose profile of about 200 words")
    highlights: list[str] = Field(default_factory=list, description="3-5 key qualifications")


def summary_cache_key(name: str, cv_text: str) -> str:
    """Cache key for a candidate summary."""
    payload = f"resume:{name}|{normalize_text(cv_text)}"
    return SUMMARY_CACHE_PREFIX + hashlib.sha256(payload.encode("utf-8")).hexdigest()


class CandidateSummarizerAgent(BaseAgent):
    """Summarize candidates from raw CV text or stored excerpts."""

    agent_name = "candidate_summarizer"

    def __init__(
        self,
        settings: Settings,
        cache: CacheClient | None = None,
        cv_text_store: CVTextStore | None = None,
    ) -> None:
        """Initialize with settings, the summary cache and the excerpt store."""
        super().__init__(settings)
        self._cache = cache
        self._store = cv_text_store

    async def summarize(self, name: str, cv_text: str) -> CandidateSummary:
        """Summarize a candidate from CV text.

        Raises:
            InvalidRequestError: If the name is blank or the text is too short.
            LLMError: If the model call fails after all retries.
        """
        name = (name or "").strip()
        text = (cv_text or "").strip()
        if not name:
            msg = "Candidate name is required"
            raise InvalidRequestError(msg)
        if len(text) < MIN_SUMMARY_TEXT_CHARS:
            msg = f"CV text must be at least {MIN_SUMMARY_TEXT_CHARS} characters"
            raise InvalidRequestError(msg)

        key = summary_cache_key(name, text)
        cached = await self._cache_get(key)
        if cached is not None:
            logger.debug("summary_cache_hit", candidate=name)
            return cached

        try:
            response = await self._call_llm(
                messages=[
                    {
                        "role": "user",
                        "content": SUMMARY_USER.format(
                            name=name, cv_text=anonymize_cv_text(text)
                        ),
                    }
                ],
                model=self.settings.summary_model,
                response_model=SummaryResponse,
                system=SUMMARY_SYSTEM.format(word_target=SUMMARY_WORD_TARGET),
            )
        except Exception as e:
            msg = f"Summary generation failed for {name}: {e}"
            raise LLMError(msg) from e

        summary = CandidateSummary(
            name=name,
            summary=response.summary.strip(),
            highlights=[h.strip() for h in response.highlights if h.strip()][:MAX_HIGHLIGHTS],
        )
        await self._cache_set(key, summary)
        return summary

    async def summarize_stored(self, cv_text_hash: str, name: str | None = None) -> CandidateSummary:
        """Summarize a candidate from the excerpt stored during analysis.

        Raises:
            NotFoundError: If the excerpt is missing or has expired.
        """
        if self._store is None:
            msg = "Stored CV text is not available"
            raise NotFoundError(msg)
        stored = await self._store.load(cv_text_hash)
        if stored is None:
            msg = "CV text not found or expired"
            raise NotFoundError(msg)
        cv_text, stored_name = stored
        return await self.summarize(name or stored_name, cv_text)

    async def summarize_batch(self, items: list[SummaryItem]) -> list[SummaryBatchEntry]:
        """Summarize several candidates; one failure does not stop the others."""
        semaphore = asyncio.Semaphore(SUMMARY_BATCH_CONCURRENCY)

        async def _one(item: SummaryItem) -> SummaryBatchEntry:
            async with semaphore:
                try:
                    if item.cv_text_hash and not item.cv_text:
                        summary = await self.summarize_stored(item.cv_text_hash, item.name)
                    else:
                        summary = await self.summarize(item.name, item.cv_text or "")
                except CVScreenerError as e:
                    logger.warning("summary_batch_item_failed", candidate=item.name, error=str(e))
                    return SummaryBatchEntry(name=item.name, error=str(e))
                return SummaryBatchEntry(name=item.name, summary=summary)

        entries = await gather_or_cancel(*(_one(item) for item in items))
        logger.info(
            "summary_batch_complete",
            total=len(entries),
            cached=sum(1 for e in entries if e.summary is not None and e.summary.cached),
            failed=sum(1 for e in entries if not e.ok),
        )
        return list(entries)

    async def _cache_get(self, key: str) -> CandidateSummary | None:
        if self._cache is None:
            return None
        raw = await self._cache.get(key)
        if raw is None:
            return None
        try:
            data = json.loads(raw)
            return CandidateSummary.model_validate({**data, "cached": True})
        except (TypeError, ValueError, ValidationError):
            logger.warning("summary_cache_invalid_entry", key=key[-16:])
            await self._cache.delete(key)
            return None

    async def _cache_set(self, key: str, summary: CandidateSummary) -> None:
        if self._cache is None:
            return
        payload = summary.model_dump(mode="json", exclude={"cached"})
        await self._cache.set(
            key,
            json.dumps(payload, ensure_ascii=False),
            ttl_seconds=self.settings.summary_cache_ttl_hours * 3600,
        )
