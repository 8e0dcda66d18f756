from decimal import Decimal

from assetcompass.core.money import parse_decimal, to_cents, to_price, to_quantity


def test_to_cents_rounds_half_down():
    assert to_cents(Decimal("1.005")) == Decimal("1.00")
    assert to_cents(Decimal("1.0051")) == Decimal("1.01")
    assert to_cents(Decimal("5000") / Decimal("18.50")) == Decimal("270.27")


def test_to_quantity_rounds_half_down_at_tenth_decimal():
    assert to_quantity(Decimal("0.00000000015")) == Decimal("0.0000000001")
    assert to_quantity(Decimal("0.00000000016")) == Decimal("0.0000000002")
    assert to_quantity(Decimal("0.00000000004")) == Decimal("0")


def test_to_price_keeps_four_decimals():
    assert to_price(Decimal("65000.12345678")) == Decimal("65000.1235")
    assert to_price(Decimal("18.5")) == Decimal("18.5000")


def test_parse_decimal_accepts_strings_and_floats():
    assert parse_decimal("255.0100") == Decimal("255.0100")
    assert parse_decimal(0.1) == Decimal("0.1")
    assert parse_decimal(" 42 ") == Decimal("42")


def test_parse_decimal_rejects_unusable_values():
    for raw in (None, "", "N/A", "0", "-3.5", "NaN", "Infinity", True):
        assert parse_decimal(raw) is None
