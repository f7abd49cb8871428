# app/utils/decimal_utils.py
from decimal import ROUND_HALF_UP, Decimal

TWOPLACES = Decimal("0.01")
FOURPLACES = Decimal("0.0001")
HUNDRED = Decimal("100")


def to_decimal(value) -> Decimal:
    if value is None:
        return Decimal("0.00")
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def to_rate(value) -> Decimal:
    """Fractional rate such as a tax rate, kept to four places."""
    if value is None:
        return Decimal("0.0000")
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(FOURPLACES, rounding=ROUND_HALF_UP)


def percentage(part, whole) -> float:
    whole = Decimal(str(whole or 0))
    if whole == 0:
        return 0.0
    ratio = Decimal(str(part or 0)) / whole * HUNDRED
    return float(ratio.quantize(TWOPLACES, rounding=ROUND_HALF_UP))
