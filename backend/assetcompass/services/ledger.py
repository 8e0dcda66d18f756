import logging
from decimal import Decimal
from typing import Optional

from assetcompass.models.base import utcnow
from assetcompass.models.ledger_entry import LedgerEntry, LedgerKind
from assetcompass.services.stores.base import LedgerStore

logger = logging.getLogger(__name__)


class Ledger:
    """
    Append-only value history per holding.

    Entries are created once and never mutated. The newest entry is the
    holding's current derived value.
    """

    def __init__(self, store: LedgerStore):
        self.store = store

    async def append(self, holding_ref: int, kind: LedgerKind, value_at_time: Decimal) -> LedgerEntry:
        entry = LedgerEntry(
            holding_id=holding_ref,
            kind=LedgerKind(kind).value,
            value_at_time=value_at_time,
            timestamp=utcnow(),
        )
        entry = await self.store.append(entry)
        logger.debug(f"Ledger {entry.kind} for holding {holding_ref}: {value_at_time}")
        return entry

    async def history(self, holding_ref: int) -> list[LedgerEntry]:
        """Entries for a holding, newest first."""
        return await self.store.find_by_holding(holding_ref, newest_first=True)

    async def latest(self, holding_ref: int) -> Optional[LedgerEntry]:
        entries = await self.history(holding_ref)
        return entries[0] if entries else None

    async def first(self, holding_ref: int) -> Optional[LedgerEntry]:
        """The entry that created the holding (BUY or INITIAL_DEPOSIT)."""
        entries = await self.store.find_by_holding(holding_ref, newest_first=False)
        return entries[0] if entries else None
