"""Tests for analysis, credit, template and summary models."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from cv_screener_core.exceptions import (
    CVScreenerError,
    EncryptedPDFError,
    InsufficientCreditsError,
    InvalidFileError,
    RateLimitExceededError,
)
from cv_screener_core.models.analysis import AnalysisRequest, CandidateResult, CVDocument
from cv_screener_core.models.credits import CreditBalance
from cv_screener_core.models.summary import CandidateSummary, SummaryBatchEntry
from cv_screener_core.models.template import TemplateCreate
from tests.mocks.mock_factories import make_request, make_result


@pytest.mark.unit
class TestAnalysisRequest:
    """Test AnalysisRequest validation."""

    def test_generates_analysis_id(self) -> None:
        """A UUID id is generated when none is given."""
        request = AnalysisRequest(user_id="u1", requirements=["Python"])
        assert len(request.analysis_id) == 36
        assert request.created_at.tzinfo is not None

    def test_requirements_are_stripped(self) -> None:
        """Blank requirements are dropped and the rest stripped."""
        request = make_request(requirements=["  Python ", "", "   ", "SQL"])
        assert request.requirements == ["Python", "SQL"]

    def test_unsafe_analysis_id_rejected(self) -> None:
        """Ids containing path characters are rejected."""
        with pytest.raises(ValidationError, match="analysis_id"):
            make_request(analysis_id="../etc/passwd")

    def test_safe_analysis_id_accepted(self) -> None:
        """Letters, digits, dash and underscore are allowed."""
        assert make_request(analysis_id="run_2024-01").analysis_id == "run_2024-01"


@pytest.mark.unit
class TestCandidateResult:
    """Test CandidateResult bounds."""

    def test_overall_out_of_range_rejected(self) -> None:
        """Overall score must be within 0-10."""
        with pytest.raises(ValidationError):
            make_result(overall=11.0)

    def test_defaults(self) -> None:
        """Fresh results are neither cached nor failed."""
        result = CandidateResult(name="A", overall=5.0)
        assert result.scores == {}
        assert result.cached is False
        assert result.failed is False

    def test_to_public_is_json_safe(self) -> None:
        """to_public returns plain JSON types."""
        payload = make_result(cv_text_hash="abc").to_public()
        assert payload["name"] == "Jane Marie Doe"
        assert payload["cv_text_hash"] == "abc"


@pytest.mark.unit
class TestCVDocument:
    """Test CVDocument."""

    def test_size_bytes(self) -> None:
        doc = CVDocument(file_name="a.pdf", content=b"12345")
        assert doc.size_bytes == 5

    def test_content_hidden_from_repr(self) -> None:
        doc = CVDocument(file_name="a.pdf", content=b"secret-bytes")
        assert "secret-bytes" not in repr(doc)


@pytest.mark.unit
class TestCreditBalance:
    """Test CreditBalance."""

    def test_total_credits(self) -> None:
        balance = CreditBalance(user_id="u1", subscription_credits=3, purchased_credits=4)
        assert balance.total_credits == 7

    def test_last_reset_optional(self) -> None:
        balance = CreditBalance(user_id="u1", last_subscription_reset=datetime.now(UTC))
        assert balance.total_credits == 0


@pytest.mark.unit
class TestTemplateCreate:
    """Test TemplateCreate validation."""

    def test_valid_template(self) -> None:
        template = TemplateCreate(title="  Backend  ", requirements=["Python", " SQL "])
        assert template.title == "Backend"
        assert template.requirements == ["Python", "SQL"]

    def test_alias_accepted(self) -> None:
        """jobFileName is accepted as the camelCase alias."""
        template = TemplateCreate.model_validate(
            {"title": "T", "requirements": ["a", "b"], "jobFileName": "job.pdf"}
        )
        assert template.job_file_name == "job.pdf"

    def test_blank_title_rejected(self) -> None:
        with pytest.raises(ValidationError, match="title must not be blank"):
            TemplateCreate(title="   ", requirements=["a", "b"])

    def test_too_few_requirements_rejected(self) -> None:
        with pytest.raises(ValidationError, match="2-5 requirements"):
            TemplateCreate(title="T", requirements=["a", "  "])

    def test_too_many_requirements_rejected(self) -> None:
        with pytest.raises(ValidationError, match="got 6"):
            TemplateCreate(title="T", requirements=list("abcdef"))


@pytest.mark.unit
class TestSummaryBatchEntry:
    """Test SummaryBatchEntry."""

    def test_ok_with_summary(self) -> None:
        entry = SummaryBatchEntry(name="A", summary=CandidateSummary(name="A", summary="s"))
        assert entry.ok is True

    def test_not_ok_with_error(self) -> None:
        assert SummaryBatchEntry(name="A", error="boom").ok is False


@pytest.mark.unit
class TestExceptions:
    """Test exception hierarchy and HTTP mapping."""

    def test_insufficient_credits_carries_amounts(self) -> None:
        exc = InsufficientCreditsError("Not enough", required=3, available=1)
        assert exc.status_code == 402
        assert exc.required == 3
        assert exc.available == 1

    def test_rate_limit_carries_retry_after(self) -> None:
        exc = RateLimitExceededError("slow down", retry_after_seconds=42)
        assert exc.status_code == 429
        assert exc.retry_after_seconds == 42

    def test_pdf_errors_are_file_errors(self) -> None:
        assert issubclass(EncryptedPDFError, InvalidFileError)
        assert issubclass(InvalidFileError, CVScreenerError)
        assert EncryptedPDFError("x").error_code == "FILE_ERROR"
