"""FastAPI application entry point."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from cv_screener_agents.observability import configure_logging, configure_tracing
from cv_screener_agents.orchestrator.container import build_services
from cv_screener_api.errors import register_exception_handlers
from cv_screener_api.routers import (
    analyses,
    analyze,
    credits,
    health,
    requirements,
    summaries,
    templates,
)
from cv_screener_core.config.settings import Settings
from cv_screener_core.interfaces.auth import TokenVerifier

API_PREFIX = "/api"


def create_app(
    settings: Settings | None = None,
    token_verifier: TokenVerifier | None = None,
) -> FastAPI:
    """Return a configured FastAPI application.

    Services are built in the lifespan so that the database engine and
    cache connections belong to the server's event loop.
    """
    settings = settings or Settings()  # type: ignore[call-arg]
    configure_logging(settings)
    configure_tracing(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        services = await build_services(settings, token_verifier=token_verifier)
        app.state.services = services
        try:
            yield
        finally:
            await services.close()

    app = FastAPI(title="cv-screener", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings

    if settings.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    register_exception_handlers(app)
    _register_routes(app)
    return app


def _register_routes(app: FastAPI) -> None:
    for module in (health, analyze, requirements, credits, summaries, templates, analyses):
        app.include_router(module.router, prefix=API_PREFIX)


def run(host: str | None = None, port: int | None = None, reload: bool = False) -> None:
    """Serve the API with uvicorn."""
    import uvicorn

    settings = Settings()  # type: ignore[call-arg]
    uvicorn.run(
        "cv_screener_api.main:create_app",
        host=host or settings.api_host,
        port=port or settings.api_port,
        reload=reload,
        factory=True,
    )
