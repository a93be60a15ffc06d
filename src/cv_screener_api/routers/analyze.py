"""Start an analysis and stream its progress as server-sent events."""

from __future__ import annotations

import json
from typing import Annotated

import structlog
from fastapi import APIRouter, File, Form, UploadFile
from pydantic import ValidationError
from sse_starlette.sse import EventSourceResponse

from cv_screener_agents.tools.pdf_parser import PDFParser
from cv_screener_api.deps import ClientIP, CurrentUser, ServicesDep
from cv_screener_api.sse import SSE_HEADERS, drain_events, start_analysis
from cv_screener_core.exceptions import InvalidRequestError
from cv_screener_core.models.analysis import AnalysisRequest, CVDocument

logger = structlog.get_logger()

router = APIRouter(tags=["analyze"])


def parse_requirements(raw: str | None) -> list[str]:
    """Decode the ``requirements`` form field; anything but a JSON list is empty."""
    if not raw:
        return []
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        return []
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str)]


async def _read_pdfs(uploads: list[UploadFile]) -> list[CVDocument]:
    documents: list[CVDocument] = []
    for upload in uploads:
        name = upload.filename or "cv.pdf"
        if not name.lower().endswith(".pdf"):
            logger.info("upload_skipped_not_pdf", file_name=name)
            continue
        documents.append(CVDocument(file_name=name, content=await upload.read()))
    return documents


@router.post("/analyze/stream")
async def analyze_stream(
    services: ServicesDep,
    user: CurrentUser,
    ip: ClientIP,
    cvs: Annotated[list[UploadFile] | None, File()] = None,
    requirements: Annotated[str | None, Form()] = None,
    job_text: Annotated[str, Form(alias="jobText")] = "",
    job: Annotated[UploadFile | None, File()] = None,
    title: Annotated[str | None, Form()] = None,
    analysis_id: Annotated[str | None, Form(alias="analysisId")] = None,
    notify_email: Annotated[str | None, Form(alias="notifyEmail")] = None,
) -> EventSourceResponse:
    """Charge credits, then stream extraction, scoring and completion events.

    Request problems, rate limits and missing credits are answered with a
    JSON error before any event is sent.
    """
    settings = services.settings
    text = job_text.strip()
    if not text and job is not None:
        parser = PDFParser(
            max_size_mb=settings.max_cv_size_mb, max_chars=settings.max_extracted_chars
        )
        text = await parser.extract_bytes(await job.read(), job.filename or "job.pdf")

    fields: dict[str, object] = {
        "user_id": user.id,
        "title": title or None,
        "job_text": text[: settings.max_job_text_chars],
        "requirements": parse_requirements(requirements),
        "client_ip": ip,
        "notify_email": notify_email or None,
    }
    if analysis_id:
        fields["analysis_id"] = analysis_id
    try:
        request = AnalysisRequest.model_validate(fields)
    except ValidationError as e:
        first = e.errors()[0]
        msg = f"{first['loc'][0]}: {first['msg']}"
        raise InvalidRequestError(msg) from e

    documents = await _read_pdfs(cvs or [])
    state = await services.pipeline.prepare(request, documents)
    queue = start_analysis(services.pipeline, state)
    return EventSourceResponse(drain_events(queue), headers=SSE_HEADERS, ping=15)
