from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP

"""
Fixed-scale arithmetic for currency and quantities.

Currency is carried at 2 decimal places, quantities (stock, sale quantities)
at 3, exchange rates at 4. Every value that leaves one of these helpers is
quantized, so sums of already-quantized values stay exact.
"""

MONEY_SCALE = 2
QUANTITY_SCALE = 3
RATE_SCALE = 4

CENT = Decimal(1).scaleb(-MONEY_SCALE)
THOUSANDTH = Decimal(1).scaleb(-QUANTITY_SCALE)

ZERO_MONEY = Decimal("0.00")
ZERO_QUANTITY = Decimal("0.000")


def quantize_money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def quantize_quantity(value: Decimal) -> Decimal:
    return value.quantize(THOUSANDTH, rounding=ROUND_HALF_UP)


def line_subtotal(unit_price: Decimal, quantity: Decimal) -> Decimal:
    """unit_price x quantity, half-up to the cent."""
    return quantize_money(unit_price * quantity)


def sum_money(values) -> Decimal:
    total = ZERO_MONEY
    for value in values:
        total += value
    return quantize_money(total)


def safe_average(total: Decimal, count: int) -> Decimal:
    """Average to the cent; 0.00 when there is nothing to divide by."""
    if count <= 0:
        return ZERO_MONEY
    return quantize_money(total / Decimal(count))


def format_decimal(value: Decimal | None) -> str | None:
    """Render a Decimal for JSON without losing its scale."""
    if value is None:
        return None
    return format(value, "f")
