"""Base agent with LLM calling, cost tracking, and error recording."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable
from typing import TYPE_CHECKING, TypeVar

import instructor
import structlog
from anthropic import AsyncAnthropic
from pydantic import BaseModel
from tenacity import retry, stop_after_attempt, wait_exponential

from cv_screener_agents.observability.cost_tracker import (
    CostTracker,
    LLMCallMetrics,
    extract_token_usage,
)
from cv_screener_core.models.run import AgentError
from cv_screener_core.state import AnalysisState

if TYPE_CHECKING:
    from cv_screener_core.config.settings import Settings

T = TypeVar("T", bound=BaseModel)
R = TypeVar("R")

logger = structlog.get_logger()


async def gather_or_cancel(*aws: Awaitable[R]) -> list[R]:
    """Run awaitables concurrently; on the first failure cancel the rest.

    The original exception is re-raised unwrapped once every sibling has
    finished cancelling, so nothing keeps running after the caller fails.
    """
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


class BaseAgent:
    """Shared plumbing for every agent: LLM access, logging and error records."""

    agent_name: str = "base"

    def __init__(self, settings: Settings) -> None:
        """Initialize with settings."""
        self.settings = settings
        self._client = AsyncAnthropic(api_key=settings.anthropic_api_key.get_secret_value())
        self._instructor = instructor.from_anthropic(self._client)
        self._cost_tracker = CostTracker()

    @property
    def cost_summary(self) -> dict[str, object]:
        """Aggregated token and cost figures for calls made by this agent."""
        return self._cost_tracker.summary()

    def _log_start(self, context: dict[str, object] | None = None) -> None:
        """Log agent execution start."""
        logger.info(
            "agent_start",
            agent=self.agent_name,
            **(context or {}),
        )

    def _log_end(self, duration: float, context: dict[str, object] | None = None) -> None:
        """Log agent execution end with duration."""
        logger.info(
            "agent_end",
            agent=self.agent_name,
            duration_seconds=round(duration, 2),
            **(context or {}),
        )

    async def _call_llm(
        self,
        messages: list[dict[str, str]],
        model: str,
        response_model: type[T],
        max_retries: int | None = None,
        state: AnalysisState | None = None,
        system: str | None = None,
    ) -> T:
        """Call the LLM with structured output via instructor.

        Retries with exponential backoff (1s, 2s, 4s, ... capped at
        ``llm_retry_wait_max``). Tracks token usage and cost if state is
        provided.
        """
        attempts = max_retries or self.settings.llm_retry_attempts
        extra: dict[str, object] = {"system": system} if system else {}

        @retry(
            stop=stop_after_attempt(attempts),
            wait=wait_exponential(
                multiplier=1,
                min=self.settings.llm_retry_wait_min,
                max=self.settings.llm_retry_wait_max,
            ),
            reraise=True,
        )
        async def _do_call() -> T:
            response: T = await self._instructor.messages.create(
                model=model,
                max_tokens=self.settings.llm_max_tokens,
                messages=messages,
                response_model=response_model,
                **extra,
            )
            return response

        start = time.monotonic()
        result = await _do_call()
        elapsed = time.monotonic() - start

        input_tokens, output_tokens = extract_token_usage(result)
        metrics = LLMCallMetrics(
            model=model,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            duration_seconds=elapsed,
            agent_name=self.agent_name,
        )
        if state is not None:
            self._cost_tracker.record_call(
                metrics,
                state,
                max_cost=self.settings.max_cost_per_analysis_usd,
                warn_threshold=self.settings.warn_cost_threshold_usd,
            )
        else:
            self._cost_tracker.calls.append(metrics)

        logger.debug(
            "llm_call_complete",
            agent=self.agent_name,
            model=model,
            duration=round(elapsed, 2),
            input_tokens=input_tokens,
            output_tokens=output_tokens,
        )
        return result

    def _record_error(
        self,
        state: AnalysisState,
        error: Exception,
        is_fatal: bool = False,
        file_name: str | None = None,
    ) -> None:
        """Record an error in the analysis state."""
        agent_error = AgentError(
            agent_name=self.agent_name,
            error_type=type(error).__name__,
            error_message=str(error),
            file_name=file_name,
            is_fatal=is_fatal,
        )
        state.errors.append(agent_error)
        logger.error(
            "agent_error",
            agent=self.agent_name,
            error_type=type(error).__name__,
            error=str(error),
            file_name=file_name,
            is_fatal=is_fatal,
        )
