from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP

from sqlalchemy import BigInteger
from sqlalchemy.types import TypeDecorator


class ScaledDecimal(TypeDecorator):
    """
    Decimal stored as a scaled integer (e.g. cents for scale=2).

    Storage stays an exact integer on every backend, so SUM/compare in SQL
    never touch binary floating point. Python code always sees Decimal at the
    column's scale: 1250 with scale=2 loads as Decimal("12.50").
    """

    impl = BigInteger
    cache_ok = True

    def __init__(self, scale: int, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.scale = scale

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if not isinstance(value, Decimal):
            value = Decimal(str(value))
        return int(value.scaleb(self.scale).to_integral_value(rounding=ROUND_HALF_UP))

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return Decimal(int(value)).scaleb(-self.scale)


def Money() -> ScaledDecimal:
    return ScaledDecimal(2)


def Quantity() -> ScaledDecimal:
    return ScaledDecimal(3)


def Rate() -> ScaledDecimal:
    return ScaledDecimal(4)
