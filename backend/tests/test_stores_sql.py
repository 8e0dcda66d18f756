"""
SQL stores against an in-memory SQLite database.
"""
from decimal import Decimal

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from assetcompass.core.database import Base
from assetcompass.models import Holding, LedgerEntry
from assetcompass.services.ledger import Ledger
from assetcompass.services.stores import SqlHoldingStore, SqlLedgerStore
from assetcompass.services.trade_executor import HoldingLocks, TradeExecutor
from assetcompass.services.valuation import ValuationAggregator


@pytest.fixture
async def session():
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session
    await engine.dispose()


@pytest.fixture
def sql_executor(session, oracle):
    return TradeExecutor(
        oracle,
        SqlHoldingStore(session),
        ledger=Ledger(SqlLedgerStore(session)),
        locks=HoldingLocks(),
    )


async def test_buy_persists_holding_and_entry(session, sql_executor):
    receipt = await sql_executor.buy("user-1", "AAPL", "STOCK", "5000", "ZAR")
    await session.commit()

    holding = await SqlHoldingStore(session).find_by_id(receipt.holding.id)
    assert holding is not None
    assert holding.ticker == "AAPL"
    assert holding.payment_currency == "ZAR"

    entries = await SqlLedgerStore(session).find_by_holding(holding.id)
    assert len(entries) == 1
    assert entries[0].kind == "BUY"


async def test_history_is_newest_first(session, sql_executor):
    receipt = await sql_executor.buy("user-1", "AAPL", "STOCK", "1000", "USD")
    await sql_executor.refresh_price(receipt.holding.id)
    await sql_executor.manual_adjust(receipt.holding.id, "1200")
    await session.commit()

    history = await Ledger(SqlLedgerStore(session)).history(receipt.holding.id)
    assert [e.kind for e in history] == ["MANUAL_UPDATE", "PRICE_REFRESH", "BUY"]

    oldest_first = await SqlLedgerStore(session).find_by_holding(receipt.holding.id, newest_first=False)
    assert [e.kind for e in oldest_first] == ["BUY", "PRICE_REFRESH", "MANUAL_UPDATE"]


async def test_find_by_owner_filters(session, sql_executor):
    await sql_executor.buy("user-1", "AAPL", "STOCK", "100", "USD")
    await sql_executor.buy("user-2", "MSFT", "STOCK", "100", "USD")
    await sql_executor.register_manual_asset("user-1", "Savings", "500")
    await session.commit()

    owned = await SqlHoldingStore(session).find_by_owner("user-1")
    assert [h.ticker for h in owned] == ["AAPL", "SAVINGS"]


async def test_delete_removes_history(session, sql_executor):
    receipt = await sql_executor.buy("user-1", "AAPL", "STOCK", "100", "USD")
    await sql_executor.refresh_price(receipt.holding.id)
    await session.commit()

    store = SqlHoldingStore(session)
    assert await store.delete(receipt.holding.id) is True
    await session.commit()

    assert await store.find_by_id(receipt.holding.id) is None
    remaining = await session.scalar(select(func.count()).select_from(LedgerEntry))
    assert remaining == 0
    assert await store.delete(receipt.holding.id) is False


async def test_rollback_discards_the_whole_trade(session, sql_executor):
    await sql_executor.buy("user-1", "AAPL", "STOCK", "100", "USD")
    await session.rollback()

    assert await session.scalar(select(func.count()).select_from(Holding)) == 0
    assert await session.scalar(select(func.count()).select_from(LedgerEntry)) == 0


async def test_net_worth_from_sql_store(session, sql_executor, oracle):
    await sql_executor.buy("user-1", "AAPL", "STOCK", "510", "USD")
    await session.commit()

    result = await ValuationAggregator(oracle, SqlHoldingStore(session), "ZAR").net_worth("user-1")
    assert result.holding_count == 1
    assert result.total_usd == Decimal("510")
    assert result.total == Decimal("510") * Decimal("18.50")
