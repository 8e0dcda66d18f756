"""
Trade confirmation notifications.

The executor hands a completed trade to a ``TradeNotifier`` once the
holding and its ledger entry are committed. Notifiers must not raise into
the trade: dispatch problems are logged and dropped.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from decimal import Decimal

from assetcompass.tasks.notifications import send_trade_confirmation

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TradeConfirmation:
    owner_email: str
    ticker: str
    quantity: Decimal
    price: Decimal
    invested_amount: Decimal
    payment_currency: str = "USD"

    def to_payload(self) -> dict[str, str]:
        """String-only payload so it survives the Celery JSON serializer."""
        return {key: str(value) for key, value in asdict(self).items()}


class TradeNotifier(ABC):
    @abstractmethod
    async def notify_trade(self, confirmation: TradeConfirmation) -> None:
        """Hand off a confirmation without waiting for delivery."""
        raise NotImplementedError


class CeleryTradeNotifier(TradeNotifier):
    """
    Enqueues the ``send_trade_confirmation`` Celery task.

    Publishing to the broker is blocking socket I/O, so it runs in a worker
    thread off the event loop.
    """

    async def notify_trade(self, confirmation: TradeConfirmation) -> None:
        payload = confirmation.to_payload()
        try:
            await asyncio.to_thread(send_trade_confirmation.delay, **payload)
        except Exception as e:
            logger.warning(f"Failed to enqueue trade confirmation for {confirmation.ticker}: {e}")
