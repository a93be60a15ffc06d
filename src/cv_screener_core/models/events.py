"""Progress events streamed to clients while an analysis runs."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Literal

from pydantic import BaseModel, Field

EventType = Literal["progress", "extraction-progress", "result", "complete", "error"]


class AnalysisEvent(BaseModel):
    """A single server-sent event."""

    event: EventType = Field(description="SSE event name")
    data: dict[str, object] = Field(default_factory=dict, description="JSON payload")


EventSink = Callable[[AnalysisEvent], Awaitable[None]]


async def discard_event(event: AnalysisEvent) -> None:
    """Sink used when nobody is listening."""
