"""LLM cost tracking and token usage extraction."""

from __future__ import annotations

from dataclasses import dataclass, field

import structlog

from cv_screener_core.constants import TOKEN_PRICES
from cv_screener_core.exceptions import CostLimitExceededError
from cv_screener_core.state import AnalysisState

logger = structlog.get_logger()


def estimate_cost(model: str, input_tokens: int, output_tokens: int) -> float:
    """Estimated USD cost of one call; 0.0 for unknown models."""
    prices = TOKEN_PRICES.get(model)
    if not prices:
        return 0.0
    return (
        input_tokens * prices["input"] / 1_000_000
        + output_tokens * prices["output"] / 1_000_000
    )


@dataclass
class LLMCallMetrics:
    """Metrics for a single LLM call."""

    model: str
    input_tokens: int
    output_tokens: int
    duration_seconds: float
    agent_name: str


@dataclass
class CostTracker:
    """Accumulates LLM call metrics and enforces cost guardrails."""

    calls: list[LLMCallMetrics] = field(default_factory=list)

    def record_call(
        self,
        metrics: LLMCallMetrics,
        state: AnalysisState,
        max_cost: float,
        warn_threshold: float,
    ) -> None:
        """Record a call, update state, and enforce cost limits.

        Raises CostLimitExceededError if accumulated cost exceeds max_cost.
        Logs a warning when cost exceeds warn_threshold.
        """
        self.calls.append(metrics)
        state.total_tokens += metrics.input_tokens + metrics.output_tokens
        state.total_cost_usd += estimate_cost(
            metrics.model, metrics.input_tokens, metrics.output_tokens
        )

        if state.total_cost_usd > max_cost:
            msg = f"Analysis cost ${state.total_cost_usd:.4f} exceeds limit ${max_cost:.2f}"
            raise CostLimitExceededError(msg)

        if state.total_cost_usd > warn_threshold:
            logger.warning(
                "cost_warning",
                current_cost=round(state.total_cost_usd, 4),
                threshold=warn_threshold,
                limit=max_cost,
            )

    def summary(self) -> dict[str, object]:
        """Return aggregated cost summary for structured logging."""
        total_tokens = 0
        cost_by_model: dict[str, float] = {}
        for call in self.calls:
            total_tokens += call.input_tokens + call.output_tokens
            cost = estimate_cost(call.model, call.input_tokens, call.output_tokens)
            if cost:
                cost_by_model[call.model] = cost_by_model.get(call.model, 0.0) + cost

        return {
            "total_calls": len(self.calls),
            "total_tokens": total_tokens,
            "cost_by_model": cost_by_model,
            "total_cost_usd": round(sum(cost_by_model.values()), 6),
        }


def extract_token_usage(response: object) -> tuple[int, int]:
    """Extract input/output token counts from an instructor response.

    Instructor wraps the raw Anthropic response in `_raw_response`.
    Falls back to (0, 0) if the attribute chain is missing.
    """
    raw = getattr(response, "_raw_response", None)
    if raw is None:
        return (0, 0)

    usage = getattr(raw, "usage", None)
    if usage is None:
        return (0, 0)

    input_tokens = getattr(usage, "input_tokens", 0)
    output_tokens = getattr(usage, "output_tokens", 0)
    return (int(input_tokens), int(output_tokens))
