"""Process-wide services shared by the API and the CLI."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from cv_screener_agents.agents.candidate_summarizer import CandidateSummarizerAgent
from cv_screener_agents.agents.report_writer import ReportWriterAgent
from cv_screener_agents.agents.requirements_extractor import RequirementsExtractorAgent
from cv_screener_agents.orchestrator.pipeline import AnalysisPipeline
from cv_screener_agents.orchestrator.rate_limiter import SlidingWindowRateLimiter
from cv_screener_agents.services.analysis_cache import AnalysisCache
from cv_screener_agents.services.comparison import ComparisonService
from cv_screener_agents.services.credits import CreditLedger
from cv_screener_agents.services.templates import TemplateService
from cv_screener_agents.tools.factories import create_token_verifier
from cv_screener_core.interfaces.auth import TokenVerifier
from cv_screener_core.interfaces.cache import CacheClient
from cv_screener_infra.cache.factory import create_cache_client
from cv_screener_infra.db.engine import create_engine
from cv_screener_infra.db.repositories.cv_text_repo import CVTextStore
from cv_screener_infra.db.session import create_session_factory, init_db

if TYPE_CHECKING:
    from cv_screener_core.config.settings import Settings

logger = structlog.get_logger()


@dataclass
class ServiceContainer:
    """Everything a request handler or CLI command needs, built once."""

    settings: Settings
    engine: AsyncEngine
    session_factory: async_sessionmaker[AsyncSession]
    cache_client: CacheClient
    cv_text_store: CVTextStore
    ledger: CreditLedger
    templates: TemplateService
    comparison: ComparisonService
    pipeline: AnalysisPipeline
    requirements_extractor: RequirementsExtractorAgent
    summarizer: CandidateSummarizerAgent
    report_writer: ReportWriterAgent
    token_verifier: TokenVerifier

    async def close(self) -> None:
        """Release connections held by the cache, auth client and engine."""
        for resource in (self.cache_client, self.token_verifier):
            close = getattr(resource, "close", None)
            if close is not None:
                await close()
        await self.engine.dispose()
        logger.info("services_closed")


async def build_services(
    settings: Settings,
    token_verifier: TokenVerifier | None = None,
    create_tables: bool = True,
) -> ServiceContainer:
    """Create the engine, caches, ledger and agents for one process."""
    engine = create_engine(settings)
    if create_tables:
        await init_db(engine)
    session_factory = create_session_factory(engine)

    cache_client = create_cache_client(settings, session_factory)
    cv_text_store = CVTextStore(session_factory, ttl_days=settings.cv_text_ttl_days)
    ledger = CreditLedger(session_factory)
    rate_limiter = SlidingWindowRateLimiter(
        max_runs=settings.rate_limit_max_runs,
        window_seconds=settings.rate_limit_window_seconds,
    )
    pipeline = AnalysisPipeline(
        settings,
        ledger,
        session_factory,
        analysis_cache=AnalysisCache(cache_client, ttl_hours=settings.analysis_cache_ttl_hours),
        cv_text_store=cv_text_store,
        rate_limiter=rate_limiter,
    )

    logger.info(
        "services_built",
        db_backend=settings.db_backend,
        cache_backend=settings.cache_backend,
    )
    return ServiceContainer(
        settings=settings,
        engine=engine,
        session_factory=session_factory,
        cache_client=cache_client,
        cv_text_store=cv_text_store,
        ledger=ledger,
        templates=TemplateService(session_factory),
        comparison=ComparisonService(session_factory),
        pipeline=pipeline,
        requirements_extractor=RequirementsExtractorAgent(settings),
        summarizer=CandidateSummarizerAgent(
            settings, cache=cache_client, cv_text_store=cv_text_store
        ),
        report_writer=ReportWriterAgent(settings),
        token_verifier=token_verifier or create_token_verifier(settings),
    )
