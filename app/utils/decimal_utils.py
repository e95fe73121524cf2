# app/utils/decimal_utils.py
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable

TWOPLACES = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")


def to_decimal(value) -> Decimal:
    """Coerce to a 2-place Decimal; None counts as zero."""
    if value is None:
        return ZERO
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def sum_money(values: Iterable) -> Decimal:
    return to_decimal(sum((to_decimal(v) for v in values), ZERO))


def line_total(quantity, unit_price) -> Decimal:
    return to_decimal(to_decimal(quantity) * to_decimal(unit_price))


def compute_tax(subtotal, rate_percent) -> Decimal:
    return to_decimal(to_decimal(subtotal) * Decimal(str(rate_percent)) / HUNDRED)


def compute_balance(total_amount, total_paid) -> Decimal:
    return to_decimal(total_amount) - to_decimal(total_paid)
