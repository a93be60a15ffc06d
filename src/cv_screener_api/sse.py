"""Server-sent event helpers for streaming analysis progress."""

from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncIterator
from typing import Any

import structlog

from cv_screener_agents.orchestrator.pipeline import AnalysisPipeline
from cv_screener_core.models.analysis import AnalysisOutcome
from cv_screener_core.models.events import AnalysisEvent
from cv_screener_core.state import AnalysisState

logger = structlog.get_logger()

SSE_HEADERS = {"Cache-Control": "no-cache", "X-Accel-Buffering": "no"}

# Runs keep going after the client disconnects; hold a reference until done
_running: set[asyncio.Task[AnalysisOutcome | None]] = set()


def sse_json(event: str, data: Any) -> dict[str, str]:
    """Encode a payload as compact JSON in an EventSource message dict."""
    return {
        "event": event,
        "data": json.dumps(data, ensure_ascii=False, separators=(",", ":"), default=str),
    }


def start_analysis(
    pipeline: AnalysisPipeline, state: AnalysisState
) -> asyncio.Queue[AnalysisEvent | None]:
    """Run a prepared analysis in the background and return its event queue.

    ``None`` is queued once the run has finished.
    """
    queue: asyncio.Queue[AnalysisEvent | None] = asyncio.Queue()

    async def emit(event: AnalysisEvent) -> None:
        await queue.put(event)

    async def run() -> AnalysisOutcome | None:
        try:
            return await pipeline.execute(state, emit)
        except Exception:
            logger.exception("analysis_task_crashed", analysis_id=state.analysis_id)
            return None
        finally:
            await queue.put(None)

    task = asyncio.create_task(run())
    _running.add(task)
    task.add_done_callback(_running.discard)
    return queue


async def drain_events(
    queue: asyncio.Queue[AnalysisEvent | None],
) -> AsyncIterator[dict[str, str]]:
    """Yield queued events as SSE messages until the run ends."""
    while True:
        event = await queue.get()
        if event is None:
            return
        yield sse_json(event.event, event.data)
