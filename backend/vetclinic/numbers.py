"""Decimal helpers for quantities and cent rounding."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from .errors import ValidationError

QUANTITY_PLACES = Decimal("0.001")
ZERO = Decimal("0")


def to_decimal(value, field: str = "value") -> Decimal:
    """Coerce JSON input (int, float, numeric string) into a Decimal."""
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, float):
        # str() first so 0.1 stays 0.1 instead of its binary expansion
        result = Decimal(str(value))
    elif isinstance(value, str):
        try:
            result = Decimal(value.strip())
        except InvalidOperation:
            raise ValidationError(f"{field} must be a number")
    else:
        raise ValidationError(f"{field} must be a number")
    if not result.is_finite():
        raise ValidationError(f"{field} must be a finite number")
    return result


def to_quantity(value, field: str = "quantity") -> Decimal:
    """Quantities carry three fractional digits (sub-units of divisible products)."""
    return to_decimal(value, field).quantize(QUANTITY_PLACES, rounding=ROUND_HALF_UP)


def is_whole(quantity: Decimal) -> bool:
    return quantity == quantity.to_integral_value()


def round_cents(value: Decimal) -> int:
    """Round a Decimal amount of cents half-up to a whole cent."""
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def quantity_to_json(quantity):
    if quantity is None:
        return None
    quantity = Decimal(quantity)
    if is_whole(quantity):
        return int(quantity)
    return float(quantity)
