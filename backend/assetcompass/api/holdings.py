"""
Holdings API Router.
"""
from datetime import datetime
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from assetcompass.api.deps import get_executor, get_holding_store, get_ledger
from assetcompass.models.holding import InstrumentType
from assetcompass.services.ledger import Ledger
from assetcompass.services.stores import HoldingStore
from assetcompass.services.trade_executor import TradeExecutor

router = APIRouter()

# ---------- Pydantic Schemas ----------

class HoldingSchema(BaseModel):
    id: int
    owner_ref: str
    name: Optional[str]
    ticker: str
    instrument_type: str
    quantity: Decimal
    unit_price_at_acquisition: Decimal
    exchange_rate_at_acquisition: Decimal
    payment_currency: str
    acquired_at: datetime
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True


class LedgerEntrySchema(BaseModel):
    id: int
    holding_id: int
    kind: str
    value_at_time: Decimal
    timestamp: datetime

    class Config:
        from_attributes = True


class BuyRequest(BaseModel):
    owner_ref: str = Field(min_length=1, max_length=100)
    ticker: str = Field(min_length=1, max_length=20)
    name: Optional[str] = None
    instrument_type: InstrumentType = InstrumentType.STOCK
    amount: Decimal = Field(gt=0)
    currency: str = Field(default="USD", min_length=3, max_length=3)
    owner_email: Optional[str] = None


class TradeReceiptSchema(BaseModel):
    holding: HoldingSchema
    quantity: Decimal
    unit_price: Decimal
    exchange_rate: Decimal
    invested_amount: Decimal
    invested_amount_usd: Decimal
    payment_currency: str


class ManualAssetRequest(BaseModel):
    owner_ref: str = Field(min_length=1, max_length=100)
    name: str = Field(min_length=1, max_length=255)
    value: Decimal = Field(gt=0)
    instrument_type: InstrumentType = InstrumentType.OTHER
    currency: str = Field(default="USD", min_length=3, max_length=3)
    ticker: Optional[str] = None


class ValueUpdateRequest(BaseModel):
    value: Decimal = Field(gt=0)


class PriceRefreshSchema(BaseModel):
    holding: HoldingSchema
    old_price: Decimal
    new_price: Decimal
    quantity: Decimal
    profit_loss: Decimal


# ---------- Endpoints ----------

@router.post("/buy", response_model=TradeReceiptSchema, status_code=status.HTTP_201_CREATED)
async def buy(payload: BuyRequest, executor: TradeExecutor = Depends(get_executor)):
    """Invest an amount of cash in a ticker at the live price."""
    receipt = await executor.buy(
        owner_ref=payload.owner_ref,
        ticker=payload.ticker,
        instrument_type=payload.instrument_type,
        invested_amount=payload.amount,
        payment_currency=payload.currency,
        name=payload.name,
        owner_email=payload.owner_email,
    )
    return TradeReceiptSchema(
        holding=HoldingSchema.model_validate(receipt.holding),
        quantity=receipt.quantity,
        unit_price=receipt.unit_price,
        exchange_rate=receipt.exchange_rate,
        invested_amount=receipt.invested_amount,
        invested_amount_usd=receipt.invested_amount_usd,
        payment_currency=receipt.payment_currency,
    )


@router.post("/manual", response_model=HoldingSchema, status_code=status.HTTP_201_CREATED)
async def add_manual_asset(payload: ManualAssetRequest, executor: TradeExecutor = Depends(get_executor)):
    """Register a hand-valued asset (no live ticker)."""
    return await executor.register_manual_asset(
        owner_ref=payload.owner_ref,
        name=payload.name,
        value=payload.value,
        instrument_type=payload.instrument_type,
        payment_currency=payload.currency,
        ticker=payload.ticker,
    )


@router.get("", response_model=list[HoldingSchema])
async def list_holdings(owner_ref: str, holdings: HoldingStore = Depends(get_holding_store)):
    """All holdings for an owner."""
    return await holdings.find_by_owner(owner_ref)


@router.post("/{holding_id}/refresh", response_model=PriceRefreshSchema)
async def refresh_price(holding_id: int, executor: TradeExecutor = Depends(get_executor)):
    """Re-price a holding at the live quote."""
    result = await executor.refresh_price(holding_id)
    return PriceRefreshSchema(
        holding=HoldingSchema.model_validate(result.holding),
        old_price=result.old_price,
        new_price=result.new_price,
        quantity=result.quantity,
        profit_loss=result.profit_loss,
    )


@router.put("/{holding_id}/value", response_model=HoldingSchema)
async def update_value(
    holding_id: int,
    payload: ValueUpdateRequest,
    executor: TradeExecutor = Depends(get_executor),
):
    """Overwrite a holding's total value by hand."""
    return await executor.manual_adjust(holding_id, payload.value)


@router.get("/{holding_id}/history", response_model=list[LedgerEntrySchema])
async def get_history(
    holding_id: int,
    holdings: HoldingStore = Depends(get_holding_store),
    ledger: Ledger = Depends(get_ledger),
):
    """Value history for a holding, newest first."""
    if await holdings.find_by_id(holding_id) is None:
        raise HTTPException(status_code=404, detail="Holding not found")
    return await ledger.history(holding_id)


@router.delete("/{holding_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_holding(holding_id: int, holdings: HoldingStore = Depends(get_holding_store)):
    if not await holdings.delete(holding_id):
        raise HTTPException(status_code=404, detail="Holding not found")
    return None
