"""Liveness and database health."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from cv_screener_api.deps import ServicesDep

logger = structlog.get_logger()

router = APIRouter(tags=["health"])


@router.get("/health")
async def read_health(services: ServicesDep) -> JSONResponse:
    """Report whether the database answers."""
    try:
        async with services.session_factory() as session:
            await session.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error("health_database_unreachable", error=str(e))
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"ok": False, "status": "degraded", "database": "error"},
        )
    return JSONResponse(content={"ok": True, "status": "healthy", "database": "ok"})
