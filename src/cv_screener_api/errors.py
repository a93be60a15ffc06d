"""Map domain exceptions to JSON error responses."""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from cv_screener_core.exceptions import (
    CVScreenerError,
    InsufficientCreditsError,
    InvalidRequestError,
    RateLimitExceededError,
)

logger = structlog.get_logger()


def error_envelope(message: str, code: str, **extra: Any) -> dict[str, Any]:
    """Body shared by every error response."""
    return {"ok": False, "error": message, "code": code, **extra}


def register_exception_handlers(app: FastAPI) -> None:
    """Install handlers for domain and request-validation errors."""

    @app.exception_handler(CVScreenerError)
    async def _handle_domain_error(request: Request, exc: CVScreenerError) -> JSONResponse:
        extra: dict[str, Any] = {}
        headers: dict[str, str] = {}
        if isinstance(exc, InsufficientCreditsError):
            extra = {"required": exc.required, "available": exc.available}
        if isinstance(exc, RateLimitExceededError) and exc.retry_after_seconds:
            headers["Retry-After"] = str(exc.retry_after_seconds)

        log = logger.error if exc.status_code >= 500 else logger.info
        log(
            "api_error",
            path=request.url.path,
            code=exc.error_code,
            status=exc.status_code,
            error=str(exc),
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=error_envelope(str(exc), exc.error_code, **extra),
            headers=headers or None,
        )

    @app.exception_handler(RequestValidationError)
    async def _handle_validation_error(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = exc.errors()
        first = errors[0] if errors else {}
        field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = f"{field}: {first.get('msg', 'invalid value')}" if field else "Invalid request"
        logger.info("api_validation_error", path=request.url.path, error=message)
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=error_envelope(message, InvalidRequestError.error_code),
        )
