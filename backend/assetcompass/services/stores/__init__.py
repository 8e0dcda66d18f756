from assetcompass.services.stores.base import HoldingStore, LedgerStore
from assetcompass.services.stores.memory import InMemoryHoldingStore, InMemoryLedgerStore
from assetcompass.services.stores.sql import SqlHoldingStore, SqlLedgerStore

__all__ = [
    "HoldingStore",
    "LedgerStore",
    "InMemoryHoldingStore",
    "InMemoryLedgerStore",
    "SqlHoldingStore",
    "SqlLedgerStore",
]
