"""
In-process stores for tests and local experiments.

Records are kept by reference, the way an identity map would hand them out.
"""

import itertools
from typing import Optional

from assetcompass.models.holding import Holding
from assetcompass.models.ledger_entry import LedgerEntry
from assetcompass.services.stores.base import HoldingStore, LedgerStore


class InMemoryLedgerStore(LedgerStore):
    def __init__(self) -> None:
        self._entries: list[LedgerEntry] = []
        self._ids = itertools.count(1)

    async def append(self, entry: LedgerEntry) -> LedgerEntry:
        entry.id = next(self._ids)
        self._entries.append(entry)
        return entry

    async def find_by_holding(self, holding_id: int, newest_first: bool = True) -> list[LedgerEntry]:
        entries = [e for e in self._entries if e.holding_id == holding_id]
        # id breaks ties between entries appended within the same clock tick
        return sorted(entries, key=lambda e: (e.timestamp, e.id), reverse=newest_first)

    def purge_holding(self, holding_id: int) -> None:
        self._entries = [e for e in self._entries if e.holding_id != holding_id]

    def __len__(self) -> int:
        return len(self._entries)


class InMemoryHoldingStore(HoldingStore):
    def __init__(self, ledger_store: Optional[InMemoryLedgerStore] = None) -> None:
        self._holdings: dict[int, Holding] = {}
        self._ids = itertools.count(1)
        self._ledger_store = ledger_store

    async def save(self, holding: Holding) -> Holding:
        if holding.id is None:
            holding.id = next(self._ids)
        self._holdings[holding.id] = holding
        return holding

    async def find_by_id(self, holding_id: int) -> Optional[Holding]:
        return self._holdings.get(holding_id)

    async def find_by_owner(self, owner_ref: str) -> list[Holding]:
        return [h for h in self._holdings.values() if h.owner_ref == owner_ref]

    async def delete(self, holding_id: int) -> bool:
        if self._holdings.pop(holding_id, None) is None:
            return False
        if self._ledger_store is not None:
            self._ledger_store.purge_holding(holding_id)
        return True
