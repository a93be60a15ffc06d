"""Credit balance and ledger history of the caller."""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Query

from cv_screener_api.deps import CurrentUser, ServicesDep

router = APIRouter(prefix="/credits", tags=["credits"])


@router.get("")
async def read_balance(services: ServicesDep, user: CurrentUser) -> dict[str, Any]:
    """Current balance; first-time users get a zero balance row."""
    balance = await services.ledger.get_balance(user.id)
    if balance is None:
        balance = await services.ledger.initialize_balance(user.id)
    return {
        "ok": True,
        "balance": {
            "subscriptionCredits": balance.subscription_credits,
            "purchasedCredits": balance.purchased_credits,
            "totalCredits": balance.total_credits,
            "lastSubscriptionReset": balance.last_subscription_reset,
        },
    }


@router.get("/transactions")
async def list_transactions(
    services: ServicesDep,
    user: CurrentUser,
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
) -> dict[str, Any]:
    transactions = await services.ledger.list_transactions(user.id, limit=limit)
    return {"ok": True, "transactions": [t.model_dump(mode="json") for t in transactions]}
