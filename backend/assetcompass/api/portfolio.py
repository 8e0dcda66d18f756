"""
Portfolio API Router.
"""
from decimal import Decimal

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from assetcompass.api.deps import get_aggregator
from assetcompass.services.valuation import ValuationAggregator

router = APIRouter()


class NetWorthSchema(BaseModel):
    owner_ref: str
    total: Decimal
    total_usd: Decimal
    rate_used: Decimal
    currency: str
    holding_count: int


@router.get("/net-worth", response_model=NetWorthSchema)
async def get_net_worth(owner_ref: str, aggregator: ValuationAggregator = Depends(get_aggregator)):
    """Sum of an owner's holdings in the reference currency."""
    worth = await aggregator.net_worth(owner_ref)
    return NetWorthSchema(
        owner_ref=owner_ref,
        total=worth.total,
        total_usd=worth.total_usd,
        rate_used=worth.rate_used,
        currency=worth.currency,
        holding_count=worth.holding_count,
    )
