"""
Trade execution: turns a cash investment into a holding.

Rounding is part of the contract. Invested amounts convert to USD at the
cent and quantities resolve at the tenth decimal, both round-half-down,
so a buyer is never credited with more than they paid for. Unit prices
and locked rates are held at 4dp, and every value is computed from the
stored (rounded) figures so it can be reproduced from the holding row.
"""

import asyncio
import logging
import re
from contextlib import asynccontextmanager
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, AsyncIterator, Awaitable, Callable, Optional

from assetcompass.core.config import settings
from assetcompass.core.errors import InvalidInput, NotFound, PriceUnavailable
from assetcompass.core.money import ONE, ZERO, to_cents, to_price, to_quantity
from assetcompass.models.base import utcnow
from assetcompass.models.holding import Holding, InstrumentType
from assetcompass.models.ledger_entry import LedgerEntry, LedgerKind
from assetcompass.services.ledger import Ledger
from assetcompass.services.notifications import TradeConfirmation, TradeNotifier
from assetcompass.services.price_oracle import CurrencyPair, PriceOracle, normalize_ticker
from assetcompass.services.stores.base import HoldingStore

logger = logging.getLogger(__name__)


@dataclass
class TradeReceipt:
    """Result of a buy, echoed back to the caller for the receipt."""
    holding: Holding
    quantity: Decimal
    unit_price: Decimal
    exchange_rate: Decimal
    invested_amount: Decimal
    invested_amount_usd: Decimal
    payment_currency: str
    ledger_entry: Optional[LedgerEntry] = None


@dataclass
class PriceRefresh:
    holding: Holding
    old_price: Decimal
    new_price: Decimal
    quantity: Decimal
    ledger_entry: Optional[LedgerEntry] = None

    @property
    def profit_loss(self) -> Decimal:
        return (self.new_price - self.old_price) * self.quantity


class HoldingLocks:
    """
    One asyncio.Lock per holding id, shared by every executor in the process.

    A lock is dropped once nobody holds or waits on it.
    """

    def __init__(self) -> None:
        self._locks: dict[int, asyncio.Lock] = {}
        self._users: dict[int, int] = {}

    @asynccontextmanager
    async def for_holding(self, holding_id: int) -> AsyncIterator[None]:
        lock = self._locks.setdefault(holding_id, asyncio.Lock())
        self._users[holding_id] = self._users.get(holding_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[holding_id] -= 1
            if not self._users[holding_id]:
                del self._users[holding_id]
                del self._locks[holding_id]

    def __len__(self) -> int:
        return len(self._locks)


holding_locks = HoldingLocks()


def _positive_amount(raw: Any, field: str) -> Decimal:
    try:
        value = raw if isinstance(raw, Decimal) else Decimal(str(raw))
    except (InvalidOperation, ValueError):
        raise InvalidInput(f"{field} must be a number, got {raw!r}")
    if not value.is_finite() or value <= 0:
        raise InvalidInput(f"{field} must be greater than zero, got {raw}")
    return value


def _currency_code(raw: str) -> str:
    code = (raw or "").strip().upper()
    if not re.fullmatch(r"[A-Z]{3}", code):
        raise InvalidInput(f"Invalid currency code: {raw!r}")
    return code


def _instrument_type(raw: Any) -> InstrumentType:
    try:
        return InstrumentType(str(getattr(raw, "value", raw)).upper())
    except ValueError:
        allowed = ", ".join(t.value for t in InstrumentType)
        raise InvalidInput(f"instrument_type must be one of {allowed}, got {raw!r}")


class TradeExecutor:
    """
    Executes buys, price refreshes and manual adjustments.

    The ledger and notifier are optional capabilities: without a ledger no
    history is recorded, without a notifier no confirmation goes out.

    ``commit`` makes a buy durable before its confirmation is sent. With a
    shared database session it is the session's commit; stores that write
    through need none.
    """

    def __init__(
        self,
        oracle: PriceOracle,
        holdings: HoldingStore,
        ledger: Optional[Ledger] = None,
        notifier: Optional[TradeNotifier] = None,
        locks: Optional[HoldingLocks] = None,
        commit: Optional[Callable[[], Awaitable[None]]] = None,
    ):
        self.oracle = oracle
        self.holdings = holdings
        self.ledger = ledger
        self.notifier = notifier
        self.locks = locks or holding_locks
        self.commit = commit
        self.base_currency = settings.BASE_CURRENCY

    async def buy(
        self,
        owner_ref: str,
        ticker: str,
        instrument_type: Any,
        invested_amount: Any,
        payment_currency: str,
        name: Optional[str] = None,
        owner_email: Optional[str] = None,
    ) -> TradeReceipt:
        amount = _positive_amount(invested_amount, "invested_amount")
        currency = _currency_code(payment_currency)
        itype = _instrument_type(instrument_type)
        symbol = normalize_ticker(ticker)

        # Everything is resolved before the first write, so a failure leaves no trace
        unit_price = to_price(await self.oracle.get_unit_price(symbol, itype.value))
        if unit_price <= 0:
            raise PriceUnavailable(f"No usable price for {symbol}")

        amount_usd, rate = await self._to_usd(amount, currency)

        quantity = to_quantity(amount_usd / unit_price)
        if quantity <= 0:
            raise InvalidInput(
                f"{amount} {currency} buys no {symbol} at {unit_price} {self.base_currency}"
            )

        now = utcnow()
        holding = await self.holdings.save(Holding(
            owner_ref=owner_ref,
            name=name or symbol,
            ticker=symbol,
            instrument_type=itype.value,
            quantity=quantity,
            unit_price_at_acquisition=unit_price,
            exchange_rate_at_acquisition=rate,
            payment_currency=currency,
            acquired_at=now,
            created_at=now,
            updated_at=now,
        ))
        entry = await self._record(holding, LedgerKind.BUY, unit_price * quantity)

        logger.info(
            f"BUY {owner_ref}: {quantity} {symbol} @ {unit_price} USD "
            f"for {amount} {currency} (rate {rate}, {amount_usd} USD)"
        )

        if self.commit is not None:
            await self.commit()

        if owner_email and self.notifier is not None:
            await self._notify(TradeConfirmation(
                owner_email=owner_email,
                ticker=symbol,
                quantity=quantity,
                price=unit_price,
                invested_amount=amount,
                payment_currency=currency,
            ))

        return TradeReceipt(
            holding=holding,
            quantity=quantity,
            unit_price=unit_price,
            exchange_rate=rate,
            invested_amount=amount,
            invested_amount_usd=amount_usd,
            payment_currency=currency,
            ledger_entry=entry,
        )

    async def refresh_price(self, holding_id: int) -> PriceRefresh:
        """
        Re-price a holding at the live quote. Quantity never changes.

        Hand-valued assets have no market price and are rejected.
        """
        async with self.locks.for_holding(holding_id):
            holding = await self._get(holding_id)
            if await self._is_manual(holding):
                raise InvalidInput(
                    f"Holding {holding_id} ({holding.name}) is valued by hand; update its value instead"
                )
            new_price = to_price(
                await self.oracle.get_unit_price(holding.ticker, holding.instrument_type)
            )
            if new_price <= 0:
                raise PriceUnavailable(f"No usable price for {holding.ticker}")

            old_price = holding.unit_price_at_acquisition
            holding.unit_price_at_acquisition = new_price
            holding.updated_at = utcnow()
            holding = await self.holdings.save(holding)
            entry = await self._record(holding, LedgerKind.PRICE_REFRESH, new_price * holding.quantity)

        logger.info(f"REFRESH holding {holding_id} {holding.ticker}: {old_price} -> {new_price}")
        return PriceRefresh(
            holding=holding,
            old_price=old_price,
            new_price=new_price,
            quantity=holding.quantity,
            ledger_entry=entry,
        )

    async def manual_adjust(self, holding_id: int, new_value: Any) -> Holding:
        """
        Overwrite a holding's total USD value (legacy, non-ticker assets).

        The unit price is re-derived as ``new_value / quantity`` at 4dp and the
        ledger records ``unit_price * quantity``, which equals ``new_value``
        whenever the division is exact.
        """
        value = _positive_amount(new_value, "new_value")
        async with self.locks.for_holding(holding_id):
            holding = await self._get(holding_id)
            unit_price = to_price(value / holding.quantity)
            if unit_price <= 0:
                raise InvalidInput(f"{value} is too small to price {holding.quantity} units")

            holding.unit_price_at_acquisition = unit_price
            holding.updated_at = utcnow()
            holding = await self.holdings.save(holding)
            await self._record(holding, LedgerKind.MANUAL_UPDATE, unit_price * holding.quantity)

        logger.info(
            f"MANUAL_UPDATE holding {holding_id} {holding.ticker}: value {value} "
            f"-> {unit_price} x {holding.quantity}"
        )
        return holding

    async def register_manual_asset(
        self,
        owner_ref: str,
        name: str,
        value: Any,
        instrument_type: Any = InstrumentType.OTHER,
        payment_currency: str = "USD",
        ticker: Optional[str] = None,
    ) -> Holding:
        """
        Record an asset the user values by hand (property, savings, ...):
        a single unit priced at its USD value, with an INITIAL_DEPOSIT entry.
        """
        amount = _positive_amount(value, "value")
        currency = _currency_code(payment_currency)
        itype = _instrument_type(instrument_type)
        symbol = self._manual_ticker(ticker, name)

        value_usd, rate = await self._to_usd(amount, currency)
        unit_price = to_price(value_usd)
        if unit_price <= 0:
            raise InvalidInput(f"{amount} {currency} is below one cent in {self.base_currency}")

        now = utcnow()
        holding = await self.holdings.save(Holding(
            owner_ref=owner_ref,
            name=name,
            ticker=symbol,
            instrument_type=itype.value,
            quantity=to_quantity(ONE),
            unit_price_at_acquisition=unit_price,
            exchange_rate_at_acquisition=rate,
            payment_currency=currency,
            acquired_at=now,
            created_at=now,
            updated_at=now,
        ))
        await self._record(holding, LedgerKind.INITIAL_DEPOSIT, unit_price)
        logger.info(f"INITIAL_DEPOSIT {owner_ref}: {name} valued {unit_price} USD")
        return holding

    async def _to_usd(self, amount: Decimal, currency: str) -> tuple[Decimal, Decimal]:
        """Convert at the live (or cached) rate; returns (usd_amount, locked_rate)."""
        if currency == self.base_currency:
            return amount, ONE
        rate = to_price(await self.oracle.get_exchange_rate(CurrencyPair(self.base_currency, currency)))
        if rate <= ZERO:
            raise PriceUnavailable(f"No usable {self.base_currency}/{currency} rate")
        return to_cents(amount / rate), rate

    async def _get(self, holding_id: int) -> Holding:
        holding = await self.holdings.find_by_id(holding_id)
        if holding is None:
            raise NotFound(f"Holding {holding_id} not found")
        return holding

    async def _record(self, holding: Holding, kind: LedgerKind, value: Decimal) -> Optional[LedgerEntry]:
        if self.ledger is None:
            return None
        return await self.ledger.append(holding.id, kind, value)

    async def _is_manual(self, holding: Holding) -> bool:
        if holding.instrument_type == InstrumentType.OTHER.value:
            return True
        if self.ledger is None:
            return False
        first = await self.ledger.first(holding.id)
        return first is not None and first.kind == LedgerKind.INITIAL_DEPOSIT.value

    async def _notify(self, confirmation: TradeConfirmation) -> None:
        try:
            await self.notifier.notify_trade(confirmation)
        except Exception as e:
            logger.warning(f"Trade notification failed for {confirmation.ticker}: {e}")

    @staticmethod
    def _manual_ticker(ticker: Optional[str], name: str) -> str:
        if ticker:
            try:
                return normalize_ticker(ticker)
            except PriceUnavailable as e:
                raise InvalidInput(e.message)
        # Legacy assets are keyed by the first word of their name
        words = (name or "").split()
        symbol = re.sub(r"[^A-Z0-9]", "", words[0].upper())[:20] if words else ""
        return symbol or "ASSET"
