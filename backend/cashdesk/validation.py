from __future__ import annotations

import math
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Type, TypeVar

from cashdesk.errors import ValidationError
from cashdesk.money import MONEY_SCALE, QUANTITY_SCALE, RATE_SCALE
from cashdesk.time_utils import parse_iso_datetime, parse_range_bound

# Maximum money amount: 9,999,999.99
# This prevents database overflow issues and nonsensical prices
MAX_MONEY = Decimal("9999999.99")
MAX_QUANTITY = Decimal("9999999.999")

E = TypeVar("E", bound=Enum)


def require_fields(payload: dict, *fields: str) -> None:
    missing = [f for f in fields if payload.get(f) in (None, "")]
    if missing:
        raise ValidationError(
            f"Missing required field(s): {', '.join(missing)}",
            details={"missing": missing},
        )


def _to_decimal(value: Any, field: str) -> Decimal:
    # bool is an int subclass; True must not become 1
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field} must be a number")
    if isinstance(value, Decimal):
        dec = value
    elif isinstance(value, int):
        dec = Decimal(value)
    elif isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            raise ValidationError(f"{field} must be a finite number")
        # repr-based conversion keeps 10.1 as 10.1 instead of its binary expansion
        dec = Decimal(str(value))
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be a number")
        # Reject scientific notation (e.g., "1e15", "1E10")
        if "e" in stripped.lower():
            raise ValidationError(f"{field} must be a plain number (scientific notation not allowed)")
        try:
            dec = Decimal(stripped)
        except InvalidOperation:
            raise ValidationError(f"{field} must be a number")
    else:
        raise ValidationError(f"{field} must be a number")

    if not dec.is_finite():
        raise ValidationError(f"{field} must be a finite number")
    return dec


def _parse_scaled(value: Any, field: str, scale: int, maximum: Decimal) -> Decimal:
    dec = _to_decimal(value, field)
    if abs(dec) > maximum:
        raise ValidationError(f"{field} is too large")
    step = Decimal(1).scaleb(-scale)
    if dec.as_tuple().exponent < -scale and dec != dec.quantize(step):
        raise ValidationError(f"{field} allows at most {scale} decimal places")
    return dec.quantize(step)


def parse_money(value: Any, field: str, *, minimum: Decimal | None = Decimal("0")) -> Decimal:
    """Currency amount at 2 decimal places; non-negative unless minimum is None."""
    dec = _parse_scaled(value, field, MONEY_SCALE, MAX_MONEY)
    if minimum is not None and dec < minimum:
        raise ValidationError(f"{field} must be >= {minimum}")
    return dec


def parse_quantity(value: Any, field: str = "quantity", *, allow_zero: bool = False) -> Decimal:
    """Stock/sale quantity at 3 decimal places; strictly positive by default."""
    dec = _parse_scaled(value, field, QUANTITY_SCALE, MAX_QUANTITY)
    if allow_zero:
        if dec < 0:
            raise ValidationError(f"{field} must be >= 0")
    elif dec <= 0:
        raise ValidationError(f"{field} must be greater than 0")
    return dec


def parse_rate(value: Any, field: str = "exchange_rate") -> Decimal:
    dec = _parse_scaled(value, field, RATE_SCALE, MAX_MONEY)
    if dec <= 0:
        raise ValidationError(f"{field} must be greater than 0")
    return dec


def parse_id(value: Any, field: str) -> int:
    """Integer primary key; rejects floats, bools and non-digit strings."""
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, int):
        result = value
    elif isinstance(value, str) and value.strip().isdigit():
        result = int(value.strip())
    else:
        raise ValidationError(f"{field} must be an integer")
    if result <= 0:
        raise ValidationError(f"{field} must be a positive integer")
    return result


def parse_enum(enum_cls: Type[E], value: Any, field: str) -> E:
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        try:
            return enum_cls(value.strip().lower())
        except ValueError:
            pass
    allowed = [member.value for member in enum_cls]
    raise ValidationError(
        f"{field} must be one of: {', '.join(allowed)}",
        details={"allowed": allowed},
    )


def parse_datetime(value: Any, field: str, *, end: bool = False) -> datetime:
    """Required ISO-8601 datetime (or bare date) normalized to UTC-naive."""
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} is required")
    try:
        dt = parse_range_bound(value, end=end) if end else parse_iso_datetime(value)
    except ValueError:
        raise ValidationError(f"{field} must be an ISO-8601 datetime")
    if dt is None:
        raise ValidationError(f"{field} must be an ISO-8601 datetime")
    return dt


def parse_date_range(start: Any, end: Any) -> tuple[datetime, datetime]:
    start_dt = parse_datetime(start, "start")
    end_dt = parse_datetime(end, "end", end=True)
    if start_dt > end_dt:
        raise ValidationError("start must not be after end")
    return start_dt, end_dt


def clean_optional_text(value: Any, field: str, *, max_length: int = 255) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")
    stripped = value.strip()
    if not stripped:
        return None
    if len(stripped) > max_length:
        raise ValidationError(f"{field} must be at most {max_length} characters")
    return stripped


def clean_required_text(value: Any, field: str, *, max_length: int = 255) -> str:
    cleaned = clean_optional_text(value, field, max_length=max_length)
    if cleaned is None:
        raise ValidationError(f"{field} is required")
    return cleaned
