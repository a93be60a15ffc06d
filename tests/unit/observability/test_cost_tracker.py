"""Tests for cost estimation and tracking."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from cv_screener_agents.observability.cost_tracker import (
    CostTracker,
    LLMCallMetrics,
    estimate_cost,
    extract_token_usage,
)
from cv_screener_core.exceptions import CostLimitExceededError
from cv_screener_core.state import AnalysisState

HAIKU = "claude-haiku-4-5-20251001"


def _metrics(input_tokens: int = 1000, output_tokens: int = 500, model: str = HAIKU) -> LLMCallMetrics:
    return LLMCallMetrics(
        model=model,
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        duration_seconds=0.5,
        agent_name="cv_scorer",
    )


@pytest.mark.unit
class TestEstimateCost:
    """Test per-call pricing."""

    def test_known_model(self) -> None:
        assert estimate_cost(HAIKU, 1_000_000, 1_000_000) == pytest.approx(4.80)

    def test_unknown_model_is_free(self) -> None:
        assert estimate_cost("unknown", 1000, 1000) == 0.0


@pytest.mark.unit
class TestCostTracker:
    """Test accumulation and guardrails."""

    def test_record_call_updates_state(self, analysis_state: AnalysisState) -> None:
        tracker = CostTracker()
        tracker.record_call(_metrics(), analysis_state, max_cost=5.0, warn_threshold=2.0)

        assert analysis_state.total_tokens == 1500
        assert analysis_state.total_cost_usd == pytest.approx(0.0028)
        assert len(tracker.calls) == 1

    def test_limit_exceeded(self, analysis_state: AnalysisState) -> None:
        tracker = CostTracker()
        with pytest.raises(CostLimitExceededError, match="exceeds limit"):
            tracker.record_call(_metrics(), analysis_state, max_cost=0.001, warn_threshold=0.0)

    def test_summary(self) -> None:
        tracker = CostTracker()
        tracker.calls.extend([_metrics(), _metrics(model="unknown")])

        summary = tracker.summary()

        assert summary["total_calls"] == 2
        assert summary["total_tokens"] == 3000
        assert summary["cost_by_model"] == {HAIKU: pytest.approx(0.0028)}


@pytest.mark.unit
class TestExtractTokenUsage:
    """Test reading usage from instructor responses."""

    def test_reads_raw_response(self) -> None:
        response = MagicMock()
        response._raw_response.usage.input_tokens = 12
        response._raw_response.usage.output_tokens = 34
        assert extract_token_usage(response) == (12, 34)

    def test_missing_raw_response(self) -> None:
        assert extract_token_usage(object()) == (0, 0)

    def test_missing_usage(self) -> None:
        response = MagicMock()
        response._raw_response.usage = None
        assert extract_token_usage(response) == (0, 0)
