import logging
from decimal import Decimal
from typing import Any, Optional

import httpx

from assetcompass.core.config import settings
from assetcompass.core.errors import FetchFailure
from assetcompass.core.money import parse_decimal
from assetcompass.services.market_data.base import QuoteProvider

logger = logging.getLogger(__name__)

# Payload keys Alpha Vantage uses to signal throttling or an exhausted key
RATE_LIMIT_KEYS = ("Note", "Information")


class AlphaVantageProvider(QuoteProvider):
    """
    Alpha Vantage provider.

    Stocks/ETFs use GLOBAL_QUOTE; crypto and fiat pairs use
    CURRENCY_EXCHANGE_RATE; search uses SYMBOL_SEARCH.
    """

    name = "alphavantage"

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout_sec: Optional[float] = None,
        crypto_symbols: Optional[list[str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_key = settings.ALPHA_VANTAGE_API_KEY if api_key is None else api_key
        self.base_url = settings.ALPHA_VANTAGE_BASE_URL if base_url is None else base_url
        self.timeout_sec = (
            settings.MARKET_DATA_TIMEOUT_SEC if timeout_sec is None else timeout_sec
        )
        self.crypto_symbols = {
            s.upper() for s in (settings.CRYPTO_SYMBOLS if crypto_symbols is None else crypto_symbols)
        }
        self._client = httpx.AsyncClient(timeout=self.timeout_sec, transport=transport)

    async def fetch_quote(self, symbol: str, instrument_type: Optional[str] = None) -> Decimal:
        if self._is_crypto(symbol, instrument_type):
            return await self.fetch_fx_rate(symbol, "USD")

        data = await self._get({"function": "GLOBAL_QUOTE", "symbol": symbol})
        quote = data.get("Global Quote")
        if not isinstance(quote, dict):
            raise FetchFailure(f"Alpha Vantage quote for {symbol} has no 'Global Quote'")
        price = parse_decimal(quote.get("05. price"))
        if price is None:
            raise FetchFailure(f"Alpha Vantage quote for {symbol} has no usable '05. price'")
        return price

    async def fetch_fx_rate(self, base: str, quote: str) -> Decimal:
        data = await self._get({
            "function": "CURRENCY_EXCHANGE_RATE",
            "from_currency": base,
            "to_currency": quote,
        })
        block = data.get("Realtime Currency Exchange Rate")
        if not isinstance(block, dict):
            raise FetchFailure(f"Alpha Vantage rate {base}/{quote} missing rate block")
        rate = parse_decimal(block.get("5. Exchange Rate"))
        if rate is None:
            raise FetchFailure(f"Alpha Vantage rate {base}/{quote} has no usable '5. Exchange Rate'")
        return rate

    async def search_symbols(self, query: str) -> dict[str, Any]:
        data = await self._get({"function": "SYMBOL_SEARCH", "keywords": query})
        matches = data.get("bestMatches")
        if not isinstance(matches, list):
            raise FetchFailure(f"Alpha Vantage search for '{query}' returned no 'bestMatches'")
        return {"bestMatches": matches}

    async def aclose(self) -> None:
        await self._client.aclose()

    def _is_crypto(self, symbol: str, instrument_type: Optional[str]) -> bool:
        if instrument_type is not None:
            return instrument_type == "CRYPTO"
        return symbol.upper() in self.crypto_symbols

    async def _get(self, params: dict[str, str]) -> dict[str, Any]:
        if not self.api_key:
            raise FetchFailure("Alpha Vantage API key is not configured")
        try:
            resp = await self._client.get(self.base_url, params={**params, "apikey": self.api_key})
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPError as exc:
            raise FetchFailure(f"Alpha Vantage request failed: {exc}") from exc
        except ValueError as exc:
            raise FetchFailure(f"Alpha Vantage returned invalid JSON: {exc}") from exc

        if not isinstance(data, dict):
            raise FetchFailure("Alpha Vantage returned a non-object payload")
        for key in RATE_LIMIT_KEYS:
            if key in data:
                logger.warning("Alpha Vantage rate limit signalled: %s", data[key])
                raise FetchFailure(f"Alpha Vantage rate limited: {data[key]}")
        if "Error Message" in data:
            raise FetchFailure(f"Alpha Vantage error: {data['Error Message']}")
        return data
