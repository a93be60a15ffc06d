"""Credit ledger models."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field


class CreditType(StrEnum):
    """Sub-balance a credit movement touches."""

    SUBSCRIPTION = "subscription"
    PURCHASED = "purchased"


class TransactionType(StrEnum):
    """Reason for a ledger movement."""

    PURCHASE = "purchase"
    SUBSCRIPTION_ALLOCATION = "subscription_allocation"
    DEDUCTION = "deduction"
    REFUND = "refund"
    SUBSCRIPTION_RESET = "subscription_reset"


class CreditBalance(BaseModel):
    """Current credit balance of a user."""

    user_id: str
    subscription_credits: int = 0
    purchased_credits: int = 0
    last_subscription_reset: datetime | None = None

    @property
    def total_credits(self) -> int:
        """Credits available across both sub-balances."""
        return self.subscription_credits + self.purchased_credits


class CreditCheck(BaseModel):
    """Result of checking whether a user can afford an operation."""

    has_credits: bool
    current_balance: int
    subscription_credits: int
    purchased_credits: int
    required: int
    shortfall: int = Field(description="Credits missing; 0 when has_credits")


class CreditMovement(BaseModel):
    """Credits moved on one sub-balance."""

    credit_type: CreditType
    amount: int


class DeductionResult(BaseModel):
    """Outcome of deducting credits for an analysis."""

    deducted: int
    balance_after: int
    movements: list[CreditMovement] = Field(default_factory=list)


class RefundResult(BaseModel):
    """Outcome of refunding credits for an analysis."""

    refunded: int
    balance_after: int
    movements: list[CreditMovement] = Field(default_factory=list)


class CreditTransaction(BaseModel):
    """A single ledger entry."""

    id: str
    user_id: str
    amount: int
    credit_type: CreditType
    transaction_type: TransactionType
    balance_after: int
    analysis_id: str | None = None
    description: str | None = None
    created_at: datetime
