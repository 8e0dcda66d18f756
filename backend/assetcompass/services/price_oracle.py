"""
Price oracle: live unit prices and exchange rates with stable fallbacks.

Unit prices are never cached: each lookup walks the provider chain and,
if every provider fails, returns a deterministic pseudo-price derived
from the ticker. Exchange rates are cached per currency pair; a failed
fetch serves the last good rate (or the configured seed) unchanged.
"""

import asyncio
import hashlib
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Mapping, Optional, Sequence, Union

from assetcompass.core.config import settings
from assetcompass.core.errors import FetchFailure, PriceUnavailable, UnsupportedCurrency
from assetcompass.core.money import CENT, ONE
from assetcompass.services.market_data.base import QuoteProvider

logger = logging.getLogger(__name__)

TICKER_PATTERN = re.compile(r"^[A-Z0-9][A-Z0-9.\-=^]{0,19}$")
CURRENCY_PATTERN = re.compile(r"^[A-Z]{3}$")


def normalize_ticker(ticker: str) -> str:
    """Canonical uppercase symbol. Raises PriceUnavailable if malformed."""
    symbol = (ticker or "").strip().upper()
    if not TICKER_PATTERN.match(symbol):
        raise PriceUnavailable(f"Malformed ticker: {ticker!r}")
    return symbol


def fallback_price(
    ticker: str,
    low: Decimal = Decimal("10.00"),
    high: Decimal = Decimal("500.00"),
) -> Decimal:
    """
    Deterministic pseudo-price for a ticker, in [low, high], 2dp.

    A pure function of the symbol: SHA-256 is stable across processes,
    unlike ``hash()``.
    """
    digest = hashlib.sha256(ticker.encode("utf-8")).digest()
    span_cents = int((high - low) / CENT)
    offset = int.from_bytes(digest[:8], "big") % (span_cents + 1)
    return (low + Decimal(offset) * CENT).quantize(CENT)


def fallback_search(query: str) -> dict[str, Any]:
    """Well-formed synthetic search payload keyed off the query string."""
    cleaned = query.strip()
    symbol = re.sub(r"[^A-Z0-9]", "", cleaned.upper())[:5]
    if not symbol:
        return {"bestMatches": [], "source": "fallback"}
    return {
        "bestMatches": [
            {
                "1. symbol": symbol,
                "2. name": cleaned,
                "3. type": "Equity",
                "4. region": "United States",
                "8. currency": "USD",
                "9. matchScore": "1.0000",
            }
        ],
        "source": "fallback",
    }


@dataclass(frozen=True)
class CurrencyPair:
    base: str
    quote: str

    @classmethod
    def parse(cls, raw: Union[str, "CurrencyPair"]) -> "CurrencyPair":
        """Accepts ``USD/ZAR`` or ``USDZAR``."""
        if isinstance(raw, CurrencyPair):
            return raw
        text = raw.strip().upper()
        base, _, quote = text.partition("/") if "/" in text else (text[:3], "", text[3:])
        if not (CURRENCY_PATTERN.match(base) and CURRENCY_PATTERN.match(quote)):
            raise UnsupportedCurrency(f"Malformed currency pair: {raw!r}")
        return cls(base, quote)

    def __str__(self) -> str:
        return f"{self.base}/{self.quote}"


@dataclass(frozen=True)
class CachedRate:
    rate: Decimal
    last_fetched_at: Optional[datetime] = None  # None while still the seed

    @property
    def is_seed(self) -> bool:
        return self.last_fetched_at is None


class RateCache:
    """
    One cell per currency pair holding the last good rate.

    Cells hold immutable records and a write is a single dict assignment,
    so concurrent writers race benignly (last successful write wins) and
    readers never block.
    """

    def __init__(self, seeds: Optional[Mapping[str, Any]] = None):
        seeds = settings.DEFAULT_FX_RATES if seeds is None else seeds
        self._cells: dict[CurrencyPair, CachedRate] = {
            CurrencyPair.parse(pair): CachedRate(Decimal(str(rate)))
            for pair, rate in seeds.items()
        }

    def get(self, pair: CurrencyPair) -> Optional[CachedRate]:
        return self._cells.get(pair)

    def put(self, pair: CurrencyPair, rate: Decimal, fetched_at: Optional[datetime] = None) -> CachedRate:
        record = CachedRate(rate, fetched_at or datetime.now(timezone.utc))
        self._cells[pair] = record
        return record


@dataclass(frozen=True)
class Quote:
    symbol: str
    price: Decimal
    source: str

    @property
    def is_fallback(self) -> bool:
        return self.source == "fallback"


class PriceOracle:
    """Resolves unit prices, exchange rates and instrument search."""

    def __init__(
        self,
        providers: Sequence[QuoteProvider],
        rate_cache: Optional[RateCache] = None,
        timeout_sec: Optional[float] = None,
        fallback_min: Optional[Decimal] = None,
        fallback_max: Optional[Decimal] = None,
    ) -> None:
        self.providers = list(providers)
        self.rate_cache = rate_cache or RateCache()
        self.timeout_sec = settings.MARKET_DATA_TIMEOUT_SEC if timeout_sec is None else timeout_sec
        self.fallback_min = settings.FALLBACK_PRICE_MIN if fallback_min is None else fallback_min
        self.fallback_max = settings.FALLBACK_PRICE_MAX if fallback_max is None else fallback_max

    async def get_quote(self, ticker: str, instrument_type: Optional[str] = None) -> Quote:
        symbol = normalize_ticker(ticker)
        for provider in self.providers:
            price = await self._attempt(
                provider, f"quote {symbol}", provider.fetch_quote(symbol, instrument_type)
            )
            if price is not None and price > 0:
                return Quote(symbol, price, provider.name)

        price = fallback_price(symbol, self.fallback_min, self.fallback_max)
        logger.warning(f"All providers failed for {symbol}; using fallback price {price}")
        return Quote(symbol, price, "fallback")

    async def get_unit_price(self, ticker: str, instrument_type: Optional[str] = None) -> Decimal:
        """Latest USD unit price, or the ticker's deterministic fallback."""
        quote = await self.get_quote(ticker, instrument_type)
        return quote.price

    async def get_exchange_rate(self, pair: Union[str, CurrencyPair]) -> Decimal:
        """
        Units of ``pair.quote`` per one ``pair.base``.

        Refreshes the cache on success; otherwise serves the cached (or seeded)
        rate. Raises UnsupportedCurrency only when the pair has neither.
        """
        pair = CurrencyPair.parse(pair)
        if pair.base == pair.quote:
            return ONE

        for provider in self.providers:
            rate = await self._attempt(
                provider, f"rate {pair}", provider.fetch_fx_rate(pair.base, pair.quote)
            )
            if rate is not None and rate > 0:
                self.rate_cache.put(pair, rate)
                logger.info(f"Live {pair} rate fetched from {provider.name}: {rate}")
                return rate

        cached = self.rate_cache.get(pair)
        if cached is None:
            raise UnsupportedCurrency(f"No rate available for {pair}")
        logger.warning(
            f"Rate fetch failed for {pair}; serving "
            f"{'seeded' if cached.is_seed else 'cached'} rate {cached.rate}"
        )
        return cached.rate

    async def search_instruments(self, query: str) -> dict[str, Any]:
        """Pass-through instrument search with a synthetic fallback."""
        for provider in self.providers:
            result = await self._attempt(provider, f"search '{query}'", provider.search_symbols(query))
            if result is not None:
                return {**result, "source": provider.name}
        return fallback_search(query)

    async def aclose(self) -> None:
        for provider in self.providers:
            await provider.aclose()

    async def _attempt(self, provider: QuoteProvider, what: str, call):
        try:
            return await asyncio.wait_for(call, timeout=self.timeout_sec)
        except asyncio.TimeoutError:
            logger.warning(f"{provider.name} timed out after {self.timeout_sec}s on {what}")
        except FetchFailure as e:
            logger.warning(f"{provider.name} failed on {what}: {e}")
        except Exception:
            logger.exception(f"Unexpected error from {provider.name} on {what}")
        return None
