import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from assetcompass.core.config import settings
from assetcompass.core.money import ZERO
from assetcompass.services.price_oracle import CurrencyPair, PriceOracle
from assetcompass.services.stores.base import HoldingStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NetWorth:
    """Net worth in the reference currency plus the rate that produced it."""
    total: Decimal
    total_usd: Decimal
    rate_used: Decimal
    currency: str
    holding_count: int


class ValuationAggregator:
    """
    Sums an owner's holdings into a single figure.

    Holdings are priced in USD internally and converted once, at the single
    rate fetched for the call. Read-only: no holding or ledger writes.
    """

    def __init__(
        self,
        oracle: PriceOracle,
        holdings: HoldingStore,
        reference_currency: Optional[str] = None,
    ):
        self.oracle = oracle
        self.holdings = holdings
        self.reference_currency = (reference_currency or settings.REFERENCE_CURRENCY).upper()

    async def net_worth(self, owner_ref: str) -> NetWorth:
        holdings = await self.holdings.find_by_owner(owner_ref)
        rate = await self.oracle.get_exchange_rate(
            CurrencyPair(settings.BASE_CURRENCY, self.reference_currency)
        )

        total_usd = sum(
            (h.current_value() for h in holdings),
            ZERO,
        )
        total = sum(
            (h.current_value() * rate for h in holdings),
            ZERO,
        )

        logger.info(
            f"Net worth for {owner_ref}: {total} {self.reference_currency} "
            f"across {len(holdings)} holdings at {rate}"
        )
        return NetWorth(
            total=total,
            total_usd=total_usd,
            rate_used=rate,
            currency=self.reference_currency,
            holding_count=len(holdings),
        )
