"""Observability: structured logging, tracing, timing and cost tracking."""

from cv_screener_agents.observability.cost_tracker import (
    CostTracker,
    LLMCallMetrics,
    estimate_cost,
    extract_token_usage,
)
from cv_screener_agents.observability.logging import (
    bind_analysis_context,
    clear_analysis_context,
    configure_logging,
)
from cv_screener_agents.observability.timing import PerformanceTimer
from cv_screener_agents.observability.tracing import (
    configure_tracing,
    disable_tracing,
    record_analysis_outcome,
    trace_analysis_run,
    traced_agent,
)

__all__ = [
    "CostTracker",
    "LLMCallMetrics",
    "PerformanceTimer",
    "bind_analysis_context",
    "clear_analysis_context",
    "configure_logging",
    "configure_tracing",
    "disable_tracing",
    "estimate_cost",
    "extract_token_usage",
    "record_analysis_outcome",
    "trace_analysis_run",
    "traced_agent",
]
