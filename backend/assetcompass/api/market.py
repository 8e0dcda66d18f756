"""
Market data API Router.
"""
from decimal import Decimal
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from assetcompass.api.deps import get_oracle
from assetcompass.core.config import settings
from assetcompass.models.holding import InstrumentType
from assetcompass.services.price_oracle import CurrencyPair, PriceOracle

router = APIRouter()


class RateSchema(BaseModel):
    pair: str
    rate: Decimal


class QuoteSchema(BaseModel):
    symbol: str
    price: Decimal
    source: str
    is_fallback: bool


@router.get("/rate", response_model=RateSchema)
async def get_rate(
    currency: Optional[str] = None,
    oracle: PriceOracle = Depends(get_oracle),
):
    """Live USD rate for the reference (or given) currency."""
    pair = CurrencyPair(settings.BASE_CURRENCY, (currency or settings.REFERENCE_CURRENCY).upper())
    rate = await oracle.get_exchange_rate(pair)
    return RateSchema(pair=str(pair), rate=rate)


@router.get("/search")
async def search(
    query: str = Query(min_length=1, max_length=100),
    oracle: PriceOracle = Depends(get_oracle),
) -> dict[str, Any]:
    """Instrument search, returned in the provider's raw layout."""
    return await oracle.search_instruments(query)


@router.get("/price/{ticker}", response_model=QuoteSchema)
async def get_price(
    ticker: str,
    instrument_type: Optional[InstrumentType] = None,
    oracle: PriceOracle = Depends(get_oracle),
):
    quote = await oracle.get_quote(ticker, instrument_type.value if instrument_type else None)
    return QuoteSchema(
        symbol=quote.symbol,
        price=quote.price,
        source=quote.source,
        is_fallback=quote.is_fallback,
    )
