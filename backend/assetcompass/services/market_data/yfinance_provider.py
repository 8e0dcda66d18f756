import logging
from concurrent.futures import Executor
from decimal import Decimal
from typing import Any, Optional

import yfinance as yf

from assetcompass.core.config import settings
from assetcompass.core.errors import FetchFailure
from assetcompass.core.money import parse_decimal
from assetcompass.services.market_data.base import QuoteProvider

logger = logging.getLogger(__name__)


class YFinanceProvider(QuoteProvider):
    """yfinance provider, used directly or as the secondary source."""

    name = "yfinance"

    def __init__(
        self,
        crypto_symbols: Optional[list[str]] = None,
        executor: Optional[Executor] = None,
    ) -> None:
        self.executor = executor
        self.crypto_symbols = {
            s.upper() for s in (settings.CRYPTO_SYMBOLS if crypto_symbols is None else crypto_symbols)
        }

    async def fetch_quote(self, symbol: str, instrument_type: Optional[str] = None) -> Decimal:
        yf_symbol = symbol
        if instrument_type == "CRYPTO" or (
            instrument_type is None and symbol.upper() in self.crypto_symbols
        ):
            yf_symbol = f"{symbol}-USD"
        return await self.run_blocking(self._last_close, yf_symbol)

    async def fetch_fx_rate(self, base: str, quote: str) -> Decimal:
        # Yahoo quotes fiat pairs as e.g. USDZAR=X
        return await self.run_blocking(self._last_close, f"{base}{quote}=X")

    async def search_symbols(self, query: str) -> dict[str, Any]:
        return await self.run_blocking(self._search, query)

    def _last_close(self, yf_symbol: str) -> Decimal:
        # yf doesn't have a reliable low-latency "realtime" API,
        # so we fetch the last 2 days and take the most recent close
        try:
            hist = yf.Ticker(yf_symbol).history(period="2d")
        except Exception as e:
            raise FetchFailure(f"yfinance history failed for {yf_symbol}: {e}") from e
        if hist is None or hist.empty or "Close" not in hist.columns:
            raise FetchFailure(f"yfinance returned no data for {yf_symbol}")

        price = parse_decimal(hist["Close"].iloc[-1])
        if price is None:
            raise FetchFailure(f"yfinance close for {yf_symbol} is not a positive number")
        return price

    def _search(self, query: str) -> dict[str, Any]:
        try:
            quotes = yf.Search(query, max_results=10).quotes
        except Exception as e:
            raise FetchFailure(f"yfinance search failed for '{query}': {e}") from e

        # Reshape into the Alpha Vantage SYMBOL_SEARCH layout callers expect
        matches = [
            {
                "1. symbol": q.get("symbol", ""),
                "2. name": q.get("longname") or q.get("shortname") or "",
                "3. type": q.get("quoteType", ""),
                "4. region": q.get("exchange", ""),
                "8. currency": q.get("currency", "USD"),
            }
            for q in quotes
            if q.get("symbol")
        ]
        return {"bestMatches": matches}
