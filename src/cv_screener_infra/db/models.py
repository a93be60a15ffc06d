"""SQLAlchemy ORM table models."""

from __future__ import annotations

from datetime import UTC, datetime
from uuid import uuid4

from sqlalchemy import DateTime, Float, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import JSON


def _now() -> datetime:
    return datetime.now(UTC)


def _uuid() -> str:
    return str(uuid4())


class Base(DeclarativeBase):
    """Base class for all ORM models."""


class CreditBalanceModel(Base):
    """Per-user credit balance split into subscription and purchased credits."""

    __tablename__ = "credit_balances"

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    subscription_credits: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    purchased_credits: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_subscription_reset: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_now, onupdate=_now
    )


class CreditTransactionModel(Base):
    """Append-only credit ledger entries."""

    __tablename__ = "credit_transactions"
    __table_args__ = (Index("ix_credit_transactions_user_analysis", "user_id", "analysis_id"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    credit_type: Mapped[str] = mapped_column(String(20), nullable=False)
    transaction_type: Mapped[str] = mapped_column(String(40), nullable=False)
    balance_after: Mapped[int] = mapped_column(Integer, nullable=False)
    analysis_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_now
    )


class AnalysisResultModel(Base):
    """One scored candidate of an analysis."""

    __tablename__ = "analysis_results"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    analysis_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    title: Mapped[str | None] = mapped_column(String(500), nullable=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_name: Mapped[str | None] = mapped_column(String(500), nullable=True)
    overall: Mapped[float] = mapped_column(Float, nullable=False)
    scores_json: Mapped[dict] = mapped_column(JSON, nullable=False)  # type: ignore[type-arg]
    strengths_json: Mapped[list] = mapped_column(JSON, nullable=False)  # type: ignore[type-arg]
    concerns_json: Mapped[list] = mapped_column(JSON, nullable=False)  # type: ignore[type-arg]
    cv_text_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_now
    )


class JobTemplateModel(Base):
    """Saved job title + requirement set."""

    __tablename__ = "job_templates"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    job_file_name: Mapped[str | None] = mapped_column(String(500), nullable=True)
    requirements_json: Mapped[list] = mapped_column(JSON, nullable=False)  # type: ignore[type-arg]
    usage_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_used_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_now, onupdate=_now
    )


class CVTextModel(Base):
    """Anonymized CV excerpts kept for on-demand candidate summaries."""

    __tablename__ = "cv_text_cache"

    text_hash: Mapped[str] = mapped_column(String(64), primary_key=True)
    cv_text: Mapped[str] = mapped_column(Text, nullable=False)
    candidate_name: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_now
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
