"""
Shared fixtures: a scriptable quote provider, in-memory stores and an
executor/aggregator wired around them.
"""
import asyncio
import os
from decimal import Decimal
from typing import Any, Optional

# Settings are read at import time; keep tests off Postgres and e-mail
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("NOTIFICATIONS_ENABLED", "false")
os.environ.setdefault("ALPHA_VANTAGE_API_KEY", "")

import pytest

from assetcompass.core.errors import FetchFailure
from assetcompass.services.ledger import Ledger
from assetcompass.services.market_data.base import QuoteProvider
from assetcompass.services.notifications import TradeConfirmation, TradeNotifier
from assetcompass.services.price_oracle import PriceOracle, RateCache
from assetcompass.services.stores import InMemoryHoldingStore, InMemoryLedgerStore
from assetcompass.services.trade_executor import HoldingLocks, TradeExecutor
from assetcompass.services.valuation import ValuationAggregator


class FakeProvider(QuoteProvider):
    """Quote provider driven by dictionaries; unknown symbols fail."""

    name = "fake"

    def __init__(
        self,
        prices: Optional[dict[str, Any]] = None,
        rates: Optional[dict[str, Any]] = None,
        search_results: Optional[dict[str, Any]] = None,
        delay: float = 0.0,
    ):
        self.prices = {k: Decimal(str(v)) for k, v in (prices or {}).items()}
        self.rates = {k: Decimal(str(v)) for k, v in (rates or {}).items()}
        self.search_results = search_results
        self.delay = delay
        self.fail = False
        self.quote_calls: list[str] = []
        self.rate_calls: list[str] = []

    async def fetch_quote(self, symbol: str, instrument_type: Optional[str] = None) -> Decimal:
        self.quote_calls.append(symbol)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail or symbol not in self.prices:
            raise FetchFailure(f"no quote for {symbol}")
        return self.prices[symbol]

    async def fetch_fx_rate(self, base: str, quote: str) -> Decimal:
        pair = f"{base}/{quote}"
        self.rate_calls.append(pair)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail or pair not in self.rates:
            raise FetchFailure(f"no rate for {pair}")
        return self.rates[pair]

    async def search_symbols(self, query: str) -> dict[str, Any]:
        if self.fail or self.search_results is None:
            raise FetchFailure("search unavailable")
        return self.search_results


class RecordingNotifier(TradeNotifier):
    def __init__(self, fail: bool = False):
        self.sent: list[TradeConfirmation] = []
        self.fail = fail

    async def notify_trade(self, confirmation: TradeConfirmation) -> None:
        if self.fail:
            raise RuntimeError("mail relay down")
        self.sent.append(confirmation)


@pytest.fixture
def provider():
    return FakeProvider(
        prices={"AAPL": "255.00", "MSFT": "410.50", "BTC": "65000.12345678", "VOO": "480.25"},
        rates={"USD/ZAR": "18.50"},
    )


@pytest.fixture
def oracle(provider):
    return PriceOracle(
        [provider],
        rate_cache=RateCache({"USD/ZAR": "18.50"}),
        timeout_sec=0.5,
        fallback_min=Decimal("10.00"),
        fallback_max=Decimal("500.00"),
    )


@pytest.fixture
def ledger_store():
    return InMemoryLedgerStore()


@pytest.fixture
def holding_store(ledger_store):
    return InMemoryHoldingStore(ledger_store)


@pytest.fixture
def ledger(ledger_store):
    return Ledger(ledger_store)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def executor(oracle, holding_store, ledger, notifier):
    return TradeExecutor(oracle, holding_store, ledger=ledger, notifier=notifier, locks=HoldingLocks())


@pytest.fixture
def aggregator(oracle, holding_store):
    return ValuationAggregator(oracle, holding_store, reference_currency="ZAR")
