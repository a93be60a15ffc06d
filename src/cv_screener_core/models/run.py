"""Error records collected while an analysis runs."""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, Field


class AgentError(BaseModel):
    """Record of an error that occurred during agent execution."""

    agent_name: str = Field(description="Name of the agent that errored")
    error_type: str = Field(description="Exception class name")
    error_message: str = Field(description="Error description")
    file_name: str | None = Field(default=None, description="Related CV file if applicable")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(UTC), description="When the error occurred"
    )
    is_fatal: bool = Field(default=False, description="Whether this error stopped the analysis")
