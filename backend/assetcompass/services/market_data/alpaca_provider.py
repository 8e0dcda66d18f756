import logging
from decimal import Decimal
from typing import Optional

from alpaca.data import StockHistoricalDataClient
from alpaca.data.requests import StockLatestTradeRequest

from assetcompass.core.config import settings
from assetcompass.core.errors import FetchFailure
from assetcompass.core.money import parse_decimal
from assetcompass.services.market_data.base import QuoteProvider

logger = logging.getLogger(__name__)


class AlpacaProvider(QuoteProvider):
    """
    Alpaca provider for US equities.
    Uses assetcompass.core.config settings for credentials.
    Alpaca has no fiat FX feed, so rate lookups always fail over to the cache.
    """

    name = "alpaca"

    def __init__(self):
        # Note: depending on the subscription (Free vs Paid), the feed might be IEX or SIP.
        self.client = StockHistoricalDataClient(
            api_key=settings.ALPACA_API_KEY,
            secret_key=settings.ALPACA_SECRET_KEY
        )

    async def fetch_quote(self, symbol: str, instrument_type: Optional[str] = None) -> Decimal:
        if instrument_type == "CRYPTO":
            raise FetchFailure("Alpaca provider only quotes equities")
        return await self.run_blocking(self._latest_trade_price, symbol)

    async def fetch_fx_rate(self, base: str, quote: str) -> Decimal:
        raise FetchFailure("Alpaca does not publish fiat exchange rates")

    def _latest_trade_price(self, symbol: str) -> Decimal:
        try:
            request = StockLatestTradeRequest(symbol_or_symbols=[symbol])
            trades = self.client.get_stock_latest_trade(request)
        except Exception as e:
            raise FetchFailure(f"Alpaca latest trade failed for {symbol}: {e}") from e

        trade = trades.get(symbol) if isinstance(trades, dict) else None
        price = parse_decimal(getattr(trade, "price", None))
        if price is None:
            raise FetchFailure(f"Alpaca returned no usable trade price for {symbol}")
        return price
