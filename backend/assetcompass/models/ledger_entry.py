import enum

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, Numeric, String

from assetcompass.core.database import Base
from assetcompass.models.base import IdMixin, utcnow


class LedgerKind(str, enum.Enum):
    INITIAL_DEPOSIT = "INITIAL_DEPOSIT"
    BUY = "BUY"
    MANUAL_UPDATE = "MANUAL_UPDATE"
    PRICE_REFRESH = "PRICE_REFRESH"


class LedgerEntry(Base, IdMixin):
    """
    Append-only value snapshot of a holding.
    Rows are inserted once and never updated.
    """
    __tablename__ = "ledger_entries"
    __table_args__ = (
        Index("ix_ledger_entries_holding_ts", "holding_id", "timestamp"),
    )

    holding_id = Column(Integer, ForeignKey("holdings.id", ondelete="CASCADE"), nullable=False)
    kind = Column(String(20), nullable=False)
    value_at_time = Column(Numeric(24, 10), nullable=False)  # quantity x unit price, USD
    timestamp = Column(DateTime(timezone=True), nullable=False, default=utcnow)
