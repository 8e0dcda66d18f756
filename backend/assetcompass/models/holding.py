import enum

from sqlalchemy import CheckConstraint, Column, DateTime, Index, Numeric, String

from assetcompass.core.database import Base
from assetcompass.models.base import IdMixin, TimestampMixin


class InstrumentType(str, enum.Enum):
    STOCK = "STOCK"
    ETF = "ETF"
    CRYPTO = "CRYPTO"
    OTHER = "OTHER"


class Holding(Base, IdMixin, TimestampMixin):
    """
    A user's position in one instrument.

    Prices are stored in USD. ``exchange_rate_at_acquisition`` is the
    USD/payment-currency rate locked at purchase and is never rewritten.
    """
    __tablename__ = "holdings"
    __table_args__ = (
        Index("ix_holdings_owner_ref", "owner_ref"),
        CheckConstraint("quantity > 0", name="ck_holdings_quantity_positive"),
        CheckConstraint("unit_price_at_acquisition > 0", name="ck_holdings_unit_price_positive"),
    )

    owner_ref = Column(String(100), nullable=False)
    name = Column(String(255))
    ticker = Column(String(20), nullable=False)
    instrument_type = Column(String(10), nullable=False, default=InstrumentType.STOCK.value)

    quantity = Column(Numeric(20, 10), nullable=False)
    unit_price_at_acquisition = Column(Numeric(20, 4), nullable=False)
    exchange_rate_at_acquisition = Column(Numeric(20, 4), nullable=False)
    payment_currency = Column(String(3), nullable=False, default="USD")

    acquired_at = Column(DateTime(timezone=True), nullable=False)

    def current_value(self):
        """Total USD value at the held reference price."""
        return self.quantity * self.unit_price_at_acquisition

    def __repr__(self) -> str:
        return (
            f"<Holding id={self.id} owner={self.owner_ref} {self.ticker} "
            f"qty={self.quantity} @ {self.unit_price_at_acquisition}>"
        )
