from typing import Dict, Type
from assetcompass.services.market_data.base import QuoteProvider
from assetcompass.services.market_data.alphavantage_provider import AlphaVantageProvider
from assetcompass.services.market_data.yfinance_provider import YFinanceProvider
from assetcompass.services.market_data.alpaca_provider import AlpacaProvider
from assetcompass.core.config import settings

PROVIDERS: Dict[str, Type[QuoteProvider]] = {
    "alphavantage": AlphaVantageProvider,
    "yfinance": YFinanceProvider,
    "alpaca": AlpacaProvider,
}


def get_quote_provider(name: str = "alphavantage") -> QuoteProvider:
    """Factory to get provider instance."""
    provider_class = PROVIDERS.get(name)
    if not provider_class:
        # Fallback based on config or default
        if settings.USE_YFINANCE_FALLBACK:
            return YFinanceProvider()
        raise ValueError(f"Unknown provider: {name}")

    return provider_class()


def get_provider_chain(primary: str | None = None) -> list[QuoteProvider]:
    """
    Build the ordered provider list the price oracle walks: the configured
    primary, then yfinance when USE_YFINANCE_FALLBACK is on.
    """
    primary = primary or settings.MARKET_DATA_PROVIDER
    chain = [get_quote_provider(primary)]
    if settings.USE_YFINANCE_FALLBACK and not isinstance(chain[0], YFinanceProvider):
        chain.append(YFinanceProvider())
    return chain
