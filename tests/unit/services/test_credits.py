"""Tests for the credit ledger on SQLite."""

from __future__ import annotations

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cv_screener_agents.services.credits import CreditLedger
from cv_screener_core.exceptions import InsufficientCreditsError, InvalidRequestError
from cv_screener_core.models.credits import CreditType, TransactionType


async def _ledger_with(
    session_factory: async_sessionmaker[AsyncSession],
    subscription: int = 0,
    purchased: int = 0,
) -> CreditLedger:
    ledger = CreditLedger(session_factory)
    if subscription:
        await ledger.add_credits(
            "u1",
            subscription,
            credit_type=CreditType.SUBSCRIPTION,
            transaction_type=TransactionType.SUBSCRIPTION_ALLOCATION,
        )
    if purchased:
        await ledger.add_credits("u1", purchased)
    return ledger


@pytest.mark.unit
class TestCreditLedger:
    """Test balances, deductions and refunds."""

    async def test_initialize_balance_is_idempotent(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        ledger = CreditLedger(session_factory)
        first = await ledger.initialize_balance("u1")
        second = await ledger.initialize_balance("u1")
        assert first.total_credits == 0
        assert second.user_id == "u1"

    async def test_get_balance_missing(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        assert await CreditLedger(session_factory).get_balance("nobody") is None

    async def test_has_enough_credits(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        ledger = await _ledger_with(session_factory, subscription=2, purchased=1)

        enough = await ledger.has_enough_credits("u1", 3)
        short = await ledger.has_enough_credits("u1", 5)

        assert enough.has_credits is True
        assert enough.shortfall == 0
        assert short.has_credits is False
        assert short.shortfall == 2

    async def test_require_credits_initializes_and_raises(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        ledger = CreditLedger(session_factory)
        with pytest.raises(InsufficientCreditsError) as exc_info:
            await ledger.require_credits("new-user", 2)
        assert exc_info.value.required == 2
        assert exc_info.value.available == 0
        assert await ledger.get_balance("new-user") is not None

    async def test_deduct_uses_subscription_first(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        ledger = await _ledger_with(session_factory, subscription=2, purchased=5)

        result = await ledger.deduct_credits("u1", 3, "a1")

        assert result.deducted == 3
        assert result.balance_after == 4
        assert [(m.credit_type, m.amount) for m in result.movements] == [
            (CreditType.SUBSCRIPTION, 2),
            (CreditType.PURCHASED, 1),
        ]
        balance = await ledger.get_balance("u1")
        assert balance is not None
        assert balance.subscription_credits == 0
        assert balance.purchased_credits == 4

    async def test_deduct_insufficient_leaves_balance(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        ledger = await _ledger_with(session_factory, purchased=1)

        with pytest.raises(InsufficientCreditsError):
            await ledger.deduct_credits("u1", 2, "a1")

        balance = await ledger.get_balance("u1")
        assert balance is not None
        assert balance.total_credits == 1

    async def test_deduct_rejects_non_positive(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        with pytest.raises(InvalidRequestError):
            await CreditLedger(session_factory).deduct_credits("u1", 0, "a1")

    async def test_refund_purchased_first(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        ledger = await _ledger_with(session_factory, subscription=2, purchased=5)
        await ledger.deduct_credits("u1", 3, "a1")

        refund = await ledger.refund_analysis("u1", "a1", amount=2)

        assert refund.refunded == 2
        assert [(m.credit_type, m.amount) for m in refund.movements] == [
            (CreditType.PURCHASED, 1),
            (CreditType.SUBSCRIPTION, 1),
        ]
        assert refund.balance_after == 6

    async def test_refund_never_exceeds_deduction(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        ledger = await _ledger_with(session_factory, purchased=5)
        await ledger.deduct_credits("u1", 2, "a1")

        first = await ledger.refund_analysis("u1", "a1", amount=1)
        rest = await ledger.refund_analysis("u1", "a1")
        again = await ledger.refund_analysis("u1", "a1")

        assert first.refunded == 1
        assert rest.refunded == 1
        assert again.refunded == 0
        assert again.balance_after == 5

    async def test_refund_unknown_analysis(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        ledger = await _ledger_with(session_factory, purchased=1)
        assert (await ledger.refund_analysis("u1", "other")).refunded == 0

    async def test_reset_subscription(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        ledger = await _ledger_with(session_factory, subscription=3, purchased=2)

        balance = await ledger.reset_subscription_credits("u1", 10)

        assert balance.subscription_credits == 10
        assert balance.purchased_credits == 2
        assert balance.last_subscription_reset is not None
        with pytest.raises(InvalidRequestError):
            await ledger.reset_subscription_credits("u1", -1)

    async def test_transactions_record_balance_after(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        ledger = await _ledger_with(session_factory, purchased=5)
        await ledger.deduct_credits("u1", 2, "a1")

        transactions = await ledger.list_transactions("u1")

        by_type = {t.transaction_type: t for t in transactions}
        assert by_type[TransactionType.PURCHASE].balance_after == 5
        assert by_type[TransactionType.DEDUCTION].amount == -2
        assert by_type[TransactionType.DEDUCTION].balance_after == 3
        assert by_type[TransactionType.DEDUCTION].analysis_id == "a1"
        assert len(await ledger.list_transactions("u1", limit=1)) == 1
