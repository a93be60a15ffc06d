"""OpenTelemetry spans for analysis runs and the agents inside them."""

from __future__ import annotations

import time
from collections.abc import AsyncGenerator, Callable, Coroutine
from contextlib import asynccontextmanager
from functools import wraps
from typing import TYPE_CHECKING, Any, ParamSpec, TypeVar

import structlog

from cv_screener_core.state import AnalysisState

if TYPE_CHECKING:
    from cv_screener_core.config.settings import Settings

logger = structlog.get_logger()

# Set by configure_tracing(); None while tracing is off
_tracer: Any = None

P = ParamSpec("P")
R = TypeVar("R")


def configure_tracing(settings: Settings) -> None:
    """Install a tracer provider for the configured exporter.

    OTEL packages are imported only when an exporter is selected.
    """
    global _tracer

    if settings.otel_exporter == "none":
        _tracer = None
        return

    from opentelemetry import trace
    from opentelemetry.sdk.resources import Resource
    from opentelemetry.sdk.trace import TracerProvider

    provider = TracerProvider(
        resource=Resource.create({"service.name": settings.otel_service_name})
    )
    provider.add_span_processor(_span_processor(settings))
    trace.set_tracer_provider(provider)
    _tracer = provider.get_tracer("cv-screener")
    logger.info("tracing_configured", exporter=settings.otel_exporter)


def _span_processor(settings: Settings) -> Any:
    if settings.otel_exporter == "otlp":
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
        from opentelemetry.sdk.trace.export import BatchSpanProcessor

        return BatchSpanProcessor(OTLPSpanExporter(endpoint=settings.otel_endpoint))

    from opentelemetry.sdk.trace.export import ConsoleSpanExporter, SimpleSpanProcessor

    return SimpleSpanProcessor(ConsoleSpanExporter())


def disable_tracing() -> None:
    """Turn tracing off (used by tests)."""
    global _tracer
    _tracer = None


def _find_state(args: tuple[Any, ...]) -> AnalysisState | None:
    return next((arg for arg in args if isinstance(arg, AnalysisState)), None)


def traced_agent(
    agent_name: str,
) -> Callable[
    [Callable[P, Coroutine[Any, Any, R]]], Callable[P, Coroutine[Any, Any, R]]
]:
    """Wrap an agent's ``run`` in an ``agent.<name>`` span.

    When the wrapped call receives an AnalysisState the span also carries
    the analysis id and how many CVs went in, were scored and failed.
    Noop while tracing is off.
    """

    def decorator(
        fn: Callable[P, Coroutine[Any, Any, R]],
    ) -> Callable[P, Coroutine[Any, Any, R]]:
        @wraps(fn)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            if _tracer is None:
                return await fn(*args, **kwargs)

            state = _find_state(args)
            with _tracer.start_as_current_span(f"agent.{agent_name}") as span:
                span.set_attribute("agent.name", agent_name)
                if state is not None:
                    span.set_attribute("analysis.id", state.analysis_id)
                    span.set_attribute("agent.cv_count", state.total_count)
                start = time.monotonic()
                try:
                    result = await fn(*args, **kwargs)
                    span.set_attribute("agent.status", "ok")
                    return result
                except Exception as exc:
                    span.set_attribute("agent.status", "error")
                    span.set_attribute("agent.error", str(exc))
                    raise
                finally:
                    span.set_attribute(
                        "agent.duration_seconds", round(time.monotonic() - start, 3)
                    )
                    if state is not None:
                        span.set_attribute("agent.results", len(state.results))
                        span.set_attribute("agent.failed", len(state.failed_results))

        return wrapper

    return decorator


@asynccontextmanager
async def trace_analysis_run(state: AnalysisState) -> AsyncGenerator[Any, None]:
    """Root ``analysis.run`` span for one analysis; yields None while tracing is off."""
    if _tracer is None:
        yield None
        return

    with _tracer.start_as_current_span("analysis.run") as span:
        span.set_attribute("analysis.id", state.analysis_id)
        span.set_attribute("analysis.cv_count", state.total_count)
        span.set_attribute("analysis.requirements", len(state.request.requirements))
        yield span


def record_analysis_outcome(span: Any, status: str, state: AnalysisState) -> None:
    """Put the final status, token usage and cost on the root span."""
    if span is None:
        return
    span.set_attribute("analysis.status", status)
    span.set_attribute("analysis.scored", len(state.results) - len(state.failed_results))
    span.set_attribute("analysis.failed", len(state.failed_results))
    span.set_attribute("analysis.total_tokens", state.total_tokens)
    span.set_attribute("analysis.total_cost_usd", round(state.total_cost_usd, 4))
    span.set_attribute("analysis.errors", len(state.errors))
