"""Candidate summaries from pasted text or stored CV excerpts."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter

from cv_screener_agents.orchestrator.container import ServiceContainer
from cv_screener_api.deps import CurrentUser, ServicesDep
from cv_screener_api.schemas import BatchSummaryBody, StoredSummaryBody, SummaryBody
from cv_screener_core.exceptions import NotFoundError
from cv_screener_core.models.summary import SummaryBatchEntry, SummaryItem
from cv_screener_infra.db.repositories.result_repo import ResultRepository

router = APIRouter(prefix="/summaries", tags=["summaries"])

STORED_TEXT_NOT_FOUND = "Stored CV text not found"


async def _owns_cv_text(services: ServiceContainer, user_id: str, cv_text_hash: str) -> bool:
    async with services.session_factory() as session:
        return await ResultRepository(session).has_cv_text_hash(user_id, cv_text_hash)


def batch_stats(entries: list[SummaryBatchEntry]) -> dict[str, int]:
    """Counts reported alongside a batch of summaries."""
    processed = sum(1 for e in entries if e.ok)
    cached = sum(1 for e in entries if e.summary is not None and e.summary.cached)
    return {
        "total": len(entries),
        "processed": processed,
        "cached": cached,
        "generated": processed - cached,
        "failed": len(entries) - processed,
    }


def _entry_payload(entry: SummaryBatchEntry) -> dict[str, Any]:
    if entry.summary is None:
        return {"name": entry.name, "ok": False, "error": entry.error}
    return {"ok": True, **entry.summary.model_dump()}


@router.post("")
async def create_summary(
    body: SummaryBody, services: ServicesDep, user: CurrentUser
) -> dict[str, Any]:
    summary = await services.summarizer.summarize(body.name, body.cv_text)
    return {"ok": True, "summary": summary.model_dump()}


@router.post("/stored")
async def create_stored_summary(
    body: StoredSummaryBody, services: ServicesDep, user: CurrentUser
) -> dict[str, Any]:
    """Summarize an excerpt kept from one of the caller's analyses."""
    if not await _owns_cv_text(services, user.id, body.cv_text_hash):
        msg = STORED_TEXT_NOT_FOUND
        raise NotFoundError(msg)
    summary = await services.summarizer.summarize_stored(body.cv_text_hash, body.name)
    return {"ok": True, "summary": summary.model_dump()}


@router.post("/batch")
async def create_batch_summaries(
    body: BatchSummaryBody, services: ServicesDep, user: CurrentUser
) -> dict[str, Any]:
    """Summarize many candidates; failures are reported per item."""
    entries: list[SummaryBatchEntry | None] = []
    pending: list[SummaryItem] = []
    for raw in body.items:
        item = raw.to_item()
        stored_only = item.cv_text_hash and not item.cv_text
        if stored_only and not await _owns_cv_text(services, user.id, item.cv_text_hash or ""):
            entries.append(SummaryBatchEntry(name=item.name, error=STORED_TEXT_NOT_FOUND))
            continue
        entries.append(None)
        pending.append(item)

    generated = iter(await services.summarizer.summarize_batch(pending) if pending else [])
    merged = [entry if entry is not None else next(generated) for entry in entries]
    return {
        "ok": True,
        "summaries": [_entry_payload(e) for e in merged],
        "stats": batch_stats(merged),
    }
