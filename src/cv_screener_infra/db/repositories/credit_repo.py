"""Credit balance and transaction repository."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cv_screener_infra.db.models import CreditBalanceModel, CreditTransactionModel


class CreditRepository:
    """Data access for credit balances and the transaction ledger."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize with an async session."""
        self._session = session

    async def get_balance(
        self, user_id: str, for_update: bool = False
    ) -> CreditBalanceModel | None:
        """Load a user's balance row, optionally locking it for the transaction."""
        stmt = select(CreditBalanceModel).where(CreditBalanceModel.user_id == user_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def create_balance(self, user_id: str) -> CreditBalanceModel:
        """Insert a zero balance row."""
        model = CreditBalanceModel(user_id=user_id, subscription_credits=0, purchased_credits=0)
        self._session.add(model)
        await self._session.flush()
        return model

    async def add_transaction(self, model: CreditTransactionModel) -> CreditTransactionModel:
        """Append a ledger entry."""
        self._session.add(model)
        await self._session.flush()
        return model

    async def list_transactions(
        self, user_id: str, limit: int = 50
    ) -> list[CreditTransactionModel]:
        """Most recent ledger entries first."""
        stmt = (
            select(CreditTransactionModel)
            .where(CreditTransactionModel.user_id == user_id)
            .order_by(CreditTransactionModel.created_at.desc())
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def list_for_analysis(
        self, user_id: str, analysis_id: str
    ) -> list[CreditTransactionModel]:
        """All ledger entries recorded against one analysis, oldest first."""
        stmt = (
            select(CreditTransactionModel)
            .where(
                CreditTransactionModel.user_id == user_id,
                CreditTransactionModel.analysis_id == analysis_id,
            )
            .order_by(CreditTransactionModel.created_at)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())
