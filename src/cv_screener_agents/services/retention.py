"""Removal of expired cache rows, stored CV text and old report files."""

from __future__ import annotations

import time
from dataclasses import dataclass
from pathlib import Path

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cv_screener_agents.agents.report_writer import REPORT_FORMATS
from cv_screener_core.interfaces.cache import CacheClient
from cv_screener_infra.db.repositories.cv_text_repo import CVTextRepository

logger = structlog.get_logger()

SECONDS_PER_DAY = 86_400


@dataclass
class CleanupReport:
    """What a cleanup pass removed."""

    cache_entries: int = 0
    cv_texts: int = 0
    report_files: int = 0


def remove_old_reports(
    output_dir: Path, retention_days: int, now: float | None = None
) -> int:
    """Delete exported reports last modified more than ``retention_days`` ago."""
    if not output_dir.is_dir():
        return 0
    cutoff = (now if now is not None else time.time()) - retention_days * SECONDS_PER_DAY
    removed = 0
    for fmt in REPORT_FORMATS:
        for path in output_dir.glob(f"*_results.{fmt}"):
            if path.stat().st_mtime < cutoff:
                path.unlink(missing_ok=True)
                removed += 1
    return removed


async def run_cleanup(
    cache_client: CacheClient,
    session_factory: async_sessionmaker[AsyncSession],
    output_dir: Path,
    retention_days: int,
) -> CleanupReport:
    """Purge expired cache entries and CV excerpts, then old report files."""
    report = CleanupReport()
    report.cache_entries = await cache_client.purge_expired()

    async with session_factory() as session, session.begin():
        report.cv_texts = await CVTextRepository(session).delete_expired()

    report.report_files = remove_old_reports(output_dir, retention_days)
    logger.info(
        "cleanup_complete",
        cache_entries=report.cache_entries,
        cv_texts=report.cv_texts,
        report_files=report.report_files,
    )
    return report
