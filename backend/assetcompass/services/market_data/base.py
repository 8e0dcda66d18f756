import asyncio
from abc import ABC, abstractmethod
from concurrent.futures import Executor, ThreadPoolExecutor
from decimal import Decimal
from typing import Any, Callable, Optional, TypeVar

from assetcompass.core.config import settings
from assetcompass.core.errors import FetchFailure

T = TypeVar("T")

# Shared by every provider that wraps a blocking SDK. A timed-out call keeps
# its thread until the SDK returns; the bound caps how many can stall at once.
blocking_pool = ThreadPoolExecutor(
    max_workers=settings.MARKET_DATA_MAX_WORKERS,
    thread_name_prefix="market-data",
)


class QuoteProvider(ABC):
    """
    Abstract base class for upstream quote providers.

    Implementations raise ``FetchFailure`` for network errors, timeouts,
    malformed or missing fields and rate-limit signals. Anything they
    return is a positive Decimal or a well-formed payload.
    """

    name: str = "base"
    executor: Optional[Executor] = None

    @abstractmethod
    async def fetch_quote(self, symbol: str, instrument_type: Optional[str] = None) -> Decimal:
        """Fetch the latest USD unit price for a symbol."""
        raise NotImplementedError

    @abstractmethod
    async def fetch_fx_rate(self, base: str, quote: str) -> Decimal:
        """Fetch units of ``quote`` currency per one unit of ``base``."""
        raise NotImplementedError

    async def search_symbols(self, query: str) -> dict[str, Any]:
        """
        Search instruments by keyword. Returns ``{"bestMatches": [...]}``.
        Providers without a search capability raise FetchFailure.
        """
        raise FetchFailure(f"{self.name} does not support symbol search")

    async def aclose(self) -> None:
        """Release any pooled connections."""
        return None

    async def run_blocking(self, func: Callable[..., T], *args: Any) -> T:
        """
        Run a blocking SDK call on the bounded market data pool.

        Cancelling the await (e.g. ``asyncio.wait_for`` timing out) drops the
        call if it is still queued; a call already running finishes in its
        thread and its result is discarded.
        """
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self.executor or blocking_pool, func, *args)
