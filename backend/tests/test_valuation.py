from decimal import Decimal

import pytest

from assetcompass.core.errors import UnsupportedCurrency
from assetcompass.models.holding import Holding
from assetcompass.services.stores import InMemoryHoldingStore
from assetcompass.services.valuation import ValuationAggregator


def make_holding(owner_ref, ticker, quantity, price):
    return Holding(
        owner_ref=owner_ref,
        name=ticker,
        ticker=ticker,
        instrument_type="STOCK",
        quantity=Decimal(quantity),
        unit_price_at_acquisition=Decimal(price),
        exchange_rate_at_acquisition=Decimal("1"),
        payment_currency="USD",
    )


async def test_sums_holdings_at_one_rate(aggregator, holding_store):
    await holding_store.save(make_holding("user-1", "AAPL", "2", "100.00"))
    await holding_store.save(make_holding("user-1", "MSFT", "0.5", "410.50"))
    await holding_store.save(make_holding("someone-else", "VOO", "10", "480.25"))

    result = await aggregator.net_worth("user-1")

    assert result.total_usd == Decimal("405.25")
    assert result.rate_used == Decimal("18.50")
    assert result.total == Decimal("405.25") * Decimal("18.50")
    assert result.currency == "ZAR"
    assert result.holding_count == 2


async def test_order_of_holdings_does_not_change_total(oracle):
    rows = [("AAPL", "1.0598823529", "255.0000"), ("BTC", "0.0015384586", "65000.1235"), ("HOUSE", "1", "13513.51")]

    forward = InMemoryHoldingStore()
    for ticker, qty, price in rows:
        await forward.save(make_holding("user-1", ticker, qty, price))
    backward = InMemoryHoldingStore()
    for ticker, qty, price in reversed(rows):
        await backward.save(make_holding("user-1", ticker, qty, price))

    a = await ValuationAggregator(oracle, forward, "ZAR").net_worth("user-1")
    b = await ValuationAggregator(oracle, backward, "ZAR").net_worth("user-1")
    assert a.total == b.total
    assert a.total_usd == b.total_usd


async def test_repeated_calls_agree_while_rate_is_steady(aggregator, executor):
    await executor.buy("user-1", "AAPL", "STOCK", "5000", "ZAR")
    await executor.buy("user-1", "BTC", "CRYPTO", "250", "USD")

    first = await aggregator.net_worth("user-1")
    second = await aggregator.net_worth("user-1")
    assert first == second


async def test_does_not_write(aggregator, executor, holding_store, ledger_store):
    receipt = await executor.buy("user-1", "AAPL", "STOCK", "1000", "USD")
    entries_before = len(ledger_store)
    await aggregator.net_worth("user-1")
    assert len(ledger_store) == entries_before
    assert receipt.holding.unit_price_at_acquisition == Decimal("255.00")


async def test_empty_portfolio_is_zero(aggregator):
    result = await aggregator.net_worth("nobody")
    assert result.total == Decimal("0")
    assert result.total_usd == Decimal("0")
    assert result.holding_count == 0


async def test_rate_is_fetched_once_per_call(aggregator, holding_store, provider):
    for ticker in ("AAPL", "MSFT", "VOO"):
        await holding_store.save(make_holding("user-1", ticker, "1", "10"))
    await aggregator.net_worth("user-1")
    assert provider.rate_calls == ["USD/ZAR"]


async def test_uses_cached_rate_when_feed_is_down(aggregator, holding_store, provider):
    await holding_store.save(make_holding("user-1", "AAPL", "1", "100"))
    provider.rates["USD/ZAR"] = Decimal("19.00")
    live = await aggregator.net_worth("user-1")
    assert live.rate_used == Decimal("19.00")

    provider.fail = True
    cached = await aggregator.net_worth("user-1")
    assert cached.rate_used == Decimal("19.00")
    assert cached.total == Decimal("1900")


async def test_usd_reference_needs_no_rate(oracle, holding_store, provider):
    await holding_store.save(make_holding("user-1", "AAPL", "3", "100"))
    result = await ValuationAggregator(oracle, holding_store, "usd").net_worth("user-1")
    assert result.total == Decimal("300")
    assert result.rate_used == Decimal("1")
    assert provider.rate_calls == []


async def test_unknown_reference_currency(oracle, holding_store):
    with pytest.raises(UnsupportedCurrency):
        await ValuationAggregator(oracle, holding_store, "JPY").net_worth("user-1")
