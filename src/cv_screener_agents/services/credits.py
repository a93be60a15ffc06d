"""Prepaid credit ledger: balances, deductions and refunds.

Each user has two sub-balances. Subscription credits are consumed first,
purchased credits after that. Every movement is recorded as an entry in
``credit_transactions`` carrying the balance after the movement, so that a
refund can find exactly what an analysis consumed.
"""

from __future__ import annotations

from datetime import UTC, datetime

import structlog
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cv_screener_core.exceptions import (
    CreditLedgerError,
    InsufficientCreditsError,
    InvalidRequestError,
)
from cv_screener_core.models.credits import (
    CreditBalance,
    CreditCheck,
    CreditMovement,
    CreditTransaction,
    CreditType,
    DeductionResult,
    RefundResult,
    TransactionType,
)
from cv_screener_infra.db.models import CreditBalanceModel, CreditTransactionModel
from cv_screener_infra.db.repositories.credit_repo import CreditRepository

logger = structlog.get_logger()


def _to_balance(model: CreditBalanceModel) -> CreditBalance:
    return CreditBalance(
        user_id=model.user_id,
        subscription_credits=model.subscription_credits,
        purchased_credits=model.purchased_credits,
        last_subscription_reset=model.last_subscription_reset,
    )


def _to_transaction(model: CreditTransactionModel) -> CreditTransaction:
    return CreditTransaction(
        id=model.id,
        user_id=model.user_id,
        amount=model.amount,
        credit_type=CreditType(model.credit_type),
        transaction_type=TransactionType(model.transaction_type),
        balance_after=model.balance_after,
        analysis_id=model.analysis_id,
        description=model.description,
        created_at=model.created_at,
    )


def _total(model: CreditBalanceModel) -> int:
    return model.subscription_credits + model.purchased_credits


def _require_positive(amount: int, what: str) -> None:
    if amount <= 0:
        msg = f"{what} must be a positive number of credits, got {amount}"
        raise InvalidRequestError(msg)


class CreditLedger:
    """Credit balance operations, each in its own database transaction."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        """Initialize with an async session factory."""
        self._session_factory = session_factory

    async def initialize_balance(self, user_id: str) -> CreditBalance:
        """Create a zero balance for the user if none exists."""
        try:
            async with self._session_factory() as session, session.begin():
                repo = CreditRepository(session)
                model = await repo.get_balance(user_id)
                if model is None:
                    model = await repo.create_balance(user_id)
                    logger.info("credit_balance_initialized", user_id=user_id)
                return _to_balance(model)
        except IntegrityError:
            # Created concurrently by another request
            balance = await self.get_balance(user_id)
            if balance is None:
                raise
            return balance

    async def get_balance(self, user_id: str) -> CreditBalance | None:
        """Return the user's balance, or None if it was never initialized."""
        async with self._session_factory() as session:
            model = await CreditRepository(session).get_balance(user_id)
            return _to_balance(model) if model is not None else None

    async def has_enough_credits(self, user_id: str, required: int) -> CreditCheck:
        """Check whether the user can cover ``required`` credits."""
        _require_positive(required, "required")
        balance = await self.get_balance(user_id)
        if balance is None:
            return CreditCheck(
                has_credits=False,
                current_balance=0,
                subscription_credits=0,
                purchased_credits=0,
                required=required,
                shortfall=required,
            )
        total = balance.total_credits
        return CreditCheck(
            has_credits=total >= required,
            current_balance=total,
            subscription_credits=balance.subscription_credits,
            purchased_credits=balance.purchased_credits,
            required=required,
            shortfall=max(0, required - total),
        )

    async def require_credits(self, user_id: str, required: int) -> CreditCheck:
        """Check credits, initializing the balance on first use.

        Raises:
            InsufficientCreditsError: If the balance cannot cover ``required``.
        """
        check = await self.has_enough_credits(user_id, required)
        if not check.has_credits:
            await self.initialize_balance(user_id)
            check = await self.has_enough_credits(user_id, required)
        if not check.has_credits:
            msg = (
                f"Not enough credits: {required} required, {check.current_balance} available"
            )
            raise InsufficientCreditsError(
                msg, required=required, available=check.current_balance
            )
        return check

    async def deduct_credits(
        self,
        user_id: str,
        amount: int,
        analysis_id: str,
        description: str | None = None,
    ) -> DeductionResult:
        """Deduct credits for an analysis, subscription credits first.

        Raises:
            InsufficientCreditsError: If the balance cannot cover ``amount``.
            CreditLedgerError: If the database update fails.
        """
        _require_positive(amount, "amount")
        try:
            async with self._session_factory() as session, session.begin():
                repo = CreditRepository(session)
                model = await repo.get_balance(user_id, for_update=True)
                available = _total(model) if model is not None else 0
                if model is None or available < amount:
                    msg = f"Not enough credits: {amount} required, {available} available"
                    raise InsufficientCreditsError(msg, required=amount, available=available)

                from_subscription = min(amount, model.subscription_credits)
                from_purchased = amount - from_subscription
                movements: list[CreditMovement] = []

                for credit_type, taken in (
                    (CreditType.SUBSCRIPTION, from_subscription),
                    (CreditType.PURCHASED, from_purchased),
                ):
                    if taken == 0:
                        continue
                    if credit_type is CreditType.SUBSCRIPTION:
                        model.subscription_credits -= taken
                    else:
                        model.purchased_credits -= taken
                    await repo.add_transaction(
                        CreditTransactionModel(
                            user_id=user_id,
                            amount=-taken,
                            credit_type=credit_type.value,
                            transaction_type=TransactionType.DEDUCTION.value,
                            balance_after=_total(model),
                            analysis_id=analysis_id,
                            description=description or f"Analysis of {amount} CV(s)",
                        )
                    )
                    movements.append(CreditMovement(credit_type=credit_type, amount=taken))

                balance_after = _total(model)
        except SQLAlchemyError as e:
            msg = f"Credit deduction failed for analysis {analysis_id}"
            raise CreditLedgerError(msg) from e

        logger.info(
            "credits_deducted",
            user_id=user_id,
            analysis_id=analysis_id,
            amount=amount,
            from_subscription=from_subscription,
            from_purchased=from_purchased,
            balance_after=balance_after,
        )
        return DeductionResult(deducted=amount, balance_after=balance_after, movements=movements)

    async def refund_analysis(
        self,
        user_id: str,
        analysis_id: str,
        amount: int | None = None,
        description: str | None = None,
    ) -> RefundResult:
        """Give back credits deducted for an analysis.

        Refunds at most what the analysis consumed net of earlier refunds,
        purchased credits first. ``amount=None`` refunds everything left.
        """
        if amount is not None:
            _require_positive(amount, "amount")
        try:
            async with self._session_factory() as session, session.begin():
                repo = CreditRepository(session)
                model = await repo.get_balance(user_id, for_update=True)
                if model is None:
                    model = await repo.create_balance(user_id)

                refundable = {CreditType.SUBSCRIPTION: 0, CreditType.PURCHASED: 0}
                for tx in await repo.list_for_analysis(user_id, analysis_id):
                    if tx.transaction_type in (
                        TransactionType.DEDUCTION.value,
                        TransactionType.REFUND.value,
                    ):
                        refundable[CreditType(tx.credit_type)] -= tx.amount

                total_refundable = sum(max(0, v) for v in refundable.values())
                to_refund = total_refundable if amount is None else min(amount, total_refundable)
                movements: list[CreditMovement] = []

                remaining = to_refund
                for credit_type in (CreditType.PURCHASED, CreditType.SUBSCRIPTION):
                    give = min(remaining, max(0, refundable[credit_type]))
                    if give == 0:
                        continue
                    if credit_type is CreditType.SUBSCRIPTION:
                        model.subscription_credits += give
                    else:
                        model.purchased_credits += give
                    await repo.add_transaction(
                        CreditTransactionModel(
                            user_id=user_id,
                            amount=give,
                            credit_type=credit_type.value,
                            transaction_type=TransactionType.REFUND.value,
                            balance_after=_total(model),
                            analysis_id=analysis_id,
                            description=description or "Refund for failed analysis",
                        )
                    )
                    movements.append(CreditMovement(credit_type=credit_type, amount=give))
                    remaining -= give

                balance_after = _total(model)
        except SQLAlchemyError as e:
            msg = f"Credit refund failed for analysis {analysis_id}"
            raise CreditLedgerError(msg) from e

        if to_refund:
            logger.info(
                "credits_refunded",
                user_id=user_id,
                analysis_id=analysis_id,
                amount=to_refund,
                balance_after=balance_after,
            )
        return RefundResult(refunded=to_refund, balance_after=balance_after, movements=movements)

    async def add_credits(
        self,
        user_id: str,
        amount: int,
        credit_type: CreditType = CreditType.PURCHASED,
        transaction_type: TransactionType = TransactionType.PURCHASE,
        description: str | None = None,
    ) -> CreditBalance:
        """Add purchased or subscription credits to a user's balance."""
        _require_positive(amount, "amount")
        async with self._session_factory() as session, session.begin():
            repo = CreditRepository(session)
            model = await repo.get_balance(user_id, for_update=True)
            if model is None:
                model = await repo.create_balance(user_id)
            if credit_type is CreditType.SUBSCRIPTION:
                model.subscription_credits += amount
            else:
                model.purchased_credits += amount
            await repo.add_transaction(
                CreditTransactionModel(
                    user_id=user_id,
                    amount=amount,
                    credit_type=credit_type.value,
                    transaction_type=transaction_type.value,
                    balance_after=_total(model),
                    description=description,
                )
            )
            balance = _to_balance(model)

        logger.info(
            "credits_added",
            user_id=user_id,
            amount=amount,
            credit_type=credit_type.value,
            balance_after=balance.total_credits,
        )
        return balance

    async def reset_subscription_credits(self, user_id: str, allocation: int) -> CreditBalance:
        """Replace the subscription sub-balance with a new period's allocation."""
        if allocation < 0:
            msg = f"allocation must not be negative, got {allocation}"
            raise InvalidRequestError(msg)
        async with self._session_factory() as session, session.begin():
            repo = CreditRepository(session)
            model = await repo.get_balance(user_id, for_update=True)
            if model is None:
                model = await repo.create_balance(user_id)
            delta = allocation - model.subscription_credits
            model.subscription_credits = allocation
            model.last_subscription_reset = datetime.now(UTC)
            await repo.add_transaction(
                CreditTransactionModel(
                    user_id=user_id,
                    amount=delta,
                    credit_type=CreditType.SUBSCRIPTION.value,
                    transaction_type=TransactionType.SUBSCRIPTION_RESET.value,
                    balance_after=_total(model),
                    description=f"Subscription reset to {allocation} credits",
                )
            )
            balance = _to_balance(model)

        logger.info("subscription_credits_reset", user_id=user_id, allocation=allocation)
        return balance

    async def list_transactions(self, user_id: str, limit: int = 50) -> list[CreditTransaction]:
        """Most recent ledger entries first."""
        async with self._session_factory() as session:
            models = await CreditRepository(session).list_transactions(user_id, limit=limit)
            return [_to_transaction(m) for m in models]
