import asyncio
import threading
from concurrent.futures import ThreadPoolExecutor
from types import SimpleNamespace

import pytest

from assetcompass.core.config import settings
from assetcompass.core.errors import FetchFailure
from assetcompass.services import market_data
from assetcompass.services.market_data import get_provider_chain, get_quote_provider
from assetcompass.services.market_data.alphavantage_provider import AlphaVantageProvider
from assetcompass.services.market_data.yfinance_provider import YFinanceProvider
from assetcompass.services.market_data import yfinance_provider
from assetcompass.services.market_data.base import blocking_pool


class TestRegistry:
    def test_known_provider(self):
        assert isinstance(get_quote_provider("yfinance"), YFinanceProvider)

    def test_unknown_provider_falls_back_to_yfinance(self, monkeypatch):
        monkeypatch.setattr(settings, "USE_YFINANCE_FALLBACK", True)
        assert isinstance(get_quote_provider("bloomberg"), YFinanceProvider)

    def test_unknown_provider_without_fallback(self, monkeypatch):
        monkeypatch.setattr(settings, "USE_YFINANCE_FALLBACK", False)
        with pytest.raises(ValueError):
            get_quote_provider("bloomberg")

    def test_chain_appends_yfinance_behind_primary(self, monkeypatch):
        monkeypatch.setattr(settings, "USE_YFINANCE_FALLBACK", True)
        chain = get_provider_chain("alphavantage")
        assert [type(p) for p in chain] == [AlphaVantageProvider, YFinanceProvider]

    def test_chain_does_not_duplicate_yfinance(self, monkeypatch):
        monkeypatch.setattr(settings, "USE_YFINANCE_FALLBACK", True)
        assert [p.name for p in get_provider_chain("yfinance")] == ["yfinance"]

    def test_registry_names_match_providers(self):
        for key, cls in market_data.PROVIDERS.items():
            assert cls.name == key


class TestYFinanceProvider:
    async def test_history_error_is_fetch_failure(self, monkeypatch):
        def broken(symbol):
            raise RuntimeError("yahoo unreachable")

        monkeypatch.setattr(yfinance_provider.yf, "Ticker", broken)
        with pytest.raises(FetchFailure):
            await YFinanceProvider().fetch_quote("AAPL")

    async def test_crypto_uses_usd_pair_symbol(self, monkeypatch):
        requested = []

        def ticker(symbol):
            requested.append(symbol)
            return SimpleNamespace(history=lambda period: None)

        monkeypatch.setattr(yfinance_provider.yf, "Ticker", ticker)
        provider = YFinanceProvider(crypto_symbols=["BTC"])
        with pytest.raises(FetchFailure):
            await provider.fetch_quote("BTC")
        with pytest.raises(FetchFailure):
            await provider.fetch_quote("SOL", "CRYPTO")
        with pytest.raises(FetchFailure):
            await provider.fetch_fx_rate("USD", "ZAR")
        assert requested == ["BTC-USD", "SOL-USD", "USDZAR=X"]

    async def test_search_reshaped_to_best_matches(self, monkeypatch):
        quotes = [
            {"symbol": "NPN.JO", "longname": "Naspers Limited", "quoteType": "EQUITY", "exchange": "JNB", "currency": "ZAc"},
            {"shortname": "no symbol"},
        ]
        monkeypatch.setattr(
            yfinance_provider.yf, "Search", lambda query, max_results: SimpleNamespace(quotes=quotes)
        )
        result = await YFinanceProvider().search_symbols("naspers")
        assert result == {
            "bestMatches": [
                {
                    "1. symbol": "NPN.JO",
                    "2. name": "Naspers Limited",
                    "3. type": "EQUITY",
                    "4. region": "JNB",
                    "8. currency": "ZAc",
                }
            ]
        }


class TestBlockingPool:
    def test_shared_pool_is_bounded_by_settings(self):
        assert blocking_pool._max_workers == settings.MARKET_DATA_MAX_WORKERS

    async def test_timed_out_lookup_never_starts_when_pool_is_busy(self, monkeypatch):
        release = threading.Event()
        started = []

        def stalled_ticker(symbol):
            started.append(symbol)
            release.wait(5)
            return SimpleNamespace(history=lambda period: None)

        monkeypatch.setattr(yfinance_provider.yf, "Ticker", stalled_ticker)
        pool = ThreadPoolExecutor(max_workers=1)
        provider = YFinanceProvider(executor=pool)

        first = asyncio.ensure_future(provider.fetch_quote("AAPL"))
        await asyncio.sleep(0.05)
        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(provider.fetch_quote("MSFT"), timeout=0.05)

        release.set()
        with pytest.raises(FetchFailure):
            await first
        pool.shutdown(wait=True)
        assert started == ["AAPL"]
