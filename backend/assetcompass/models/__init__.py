# Base
from assetcompass.models.base import TimestampMixin, IdMixin

# Accounting
from assetcompass.models.holding import Holding, InstrumentType
from assetcompass.models.ledger_entry import LedgerEntry, LedgerKind

__all__ = [
    "TimestampMixin",
    "IdMixin",
    "Holding",
    "InstrumentType",
    "LedgerEntry",
    "LedgerKind",
]
