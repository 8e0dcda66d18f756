"""
Fixed-point helpers shared by the oracle, executor and aggregator.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_DOWN
from typing import Any, Optional

CENT = Decimal("0.01")
PRICE_SCALE = Decimal("0.0001")     # unit prices and exchange rates
QUANTITY_SCALE = Decimal("0.0000000001")  # 10 decimal places

ZERO = Decimal("0")
ONE = Decimal("1")


def round_down_half(value: Decimal, scale: Decimal) -> Decimal:
    """Quantize ``value`` to ``scale`` using round-half-down."""
    return value.quantize(scale, rounding=ROUND_HALF_DOWN)


def to_cents(value: Decimal) -> Decimal:
    return round_down_half(value, CENT)


def to_quantity(value: Decimal) -> Decimal:
    return round_down_half(value, QUANTITY_SCALE)


def to_price(value: Decimal) -> Decimal:
    return round_down_half(value, PRICE_SCALE)


def parse_decimal(raw: Any) -> Optional[Decimal]:
    """
    Parse a provider field into a positive Decimal.

    Returns None for missing, malformed, non-finite or non-positive values.
    Floats go through ``str`` so binary noise is not carried into the result.
    """
    if raw is None or isinstance(raw, bool):
        return None
    try:
        value = Decimal(str(raw).strip())
    except (InvalidOperation, ValueError):
        return None
    if not value.is_finite() or value <= 0:
        return None
    return value
