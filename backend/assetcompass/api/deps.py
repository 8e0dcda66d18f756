"""
Dependency wiring for the API routers.

The price oracle is process-wide so its rate cache outlives requests;
stores, ledger and executor are built per request around the request's
database session.
"""
from typing import Awaitable, Callable, Optional

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from assetcompass.core.config import settings
from assetcompass.core.database import get_db
from assetcompass.services.ledger import Ledger
from assetcompass.services.market_data import get_provider_chain
from assetcompass.services.notifications import CeleryTradeNotifier, TradeNotifier
from assetcompass.services.price_oracle import PriceOracle
from assetcompass.services.stores import HoldingStore, LedgerStore, SqlHoldingStore, SqlLedgerStore
from assetcompass.services.trade_executor import TradeExecutor
from assetcompass.services.valuation import ValuationAggregator

_oracle: Optional[PriceOracle] = None


def get_oracle() -> PriceOracle:
    global _oracle
    if _oracle is None:
        _oracle = PriceOracle(get_provider_chain())
    return _oracle


async def close_oracle() -> None:
    global _oracle
    if _oracle is not None:
        await _oracle.aclose()
        _oracle = None


def get_holding_store(db: AsyncSession = Depends(get_db)) -> HoldingStore:
    return SqlHoldingStore(db)


def get_ledger_store(db: AsyncSession = Depends(get_db)) -> LedgerStore:
    return SqlLedgerStore(db)


def get_ledger(store: LedgerStore = Depends(get_ledger_store)) -> Ledger:
    return Ledger(store)


def get_commit(db: AsyncSession = Depends(get_db)) -> Optional[Callable[[], Awaitable[None]]]:
    """Commit hook the executor runs before sending a trade confirmation."""
    return db.commit


def get_notifier() -> Optional[TradeNotifier]:
    return CeleryTradeNotifier() if settings.NOTIFICATIONS_ENABLED else None


def get_executor(
    oracle: PriceOracle = Depends(get_oracle),
    holdings: HoldingStore = Depends(get_holding_store),
    ledger: Ledger = Depends(get_ledger),
    notifier: Optional[TradeNotifier] = Depends(get_notifier),
    commit: Optional[Callable[[], Awaitable[None]]] = Depends(get_commit),
) -> TradeExecutor:
    return TradeExecutor(oracle, holdings, ledger=ledger, notifier=notifier, commit=commit)


def get_aggregator(
    oracle: PriceOracle = Depends(get_oracle),
    holdings: HoldingStore = Depends(get_holding_store),
) -> ValuationAggregator:
    return ValuationAggregator(oracle, holdings)
