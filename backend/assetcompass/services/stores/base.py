from abc import ABC, abstractmethod
from typing import Optional

from assetcompass.models.holding import Holding
from assetcompass.models.ledger_entry import LedgerEntry


class HoldingStore(ABC):
    """Persistence boundary for holdings."""

    @abstractmethod
    async def save(self, holding: Holding) -> Holding:
        """Insert or update a holding; assigns ``id`` on first save."""
        raise NotImplementedError

    @abstractmethod
    async def find_by_id(self, holding_id: int) -> Optional[Holding]:
        raise NotImplementedError

    @abstractmethod
    async def find_by_owner(self, owner_ref: str) -> list[Holding]:
        raise NotImplementedError

    @abstractmethod
    async def delete(self, holding_id: int) -> bool:
        """Remove a holding and its ledger entries. Returns False if absent."""
        raise NotImplementedError


class LedgerStore(ABC):
    """Append-only persistence boundary for ledger entries."""

    @abstractmethod
    async def append(self, entry: LedgerEntry) -> LedgerEntry:
        raise NotImplementedError

    @abstractmethod
    async def find_by_holding(self, holding_id: int, newest_first: bool = True) -> list[LedgerEntry]:
        raise NotImplementedError
