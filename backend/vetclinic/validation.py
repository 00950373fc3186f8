from __future__ import annotations
from datetime import date, datetime
from decimal import Decimal
from vetclinic.time_utils import parse_iso_datetime, parse_iso_date

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Boolean, Integer, String, Text, DateTime, Date, Numeric, JSON
from sqlalchemy.orm import DeclarativeMeta

from .errors import ValidationError
from .numbers import to_decimal, to_quantity, ZERO
from .models.inventory import PRODUCT_CATEGORIES


# Maximum price: 9,999,999.99 (999,999,999 cents)
# This prevents database overflow issues and nonsensical prices
MAX_PRICE_CENTS = 999_999_999
MAX_LINE_ITEMS = 200


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


@dataclass(frozen=True)
class LineRequest:
    """One requested invoice line, validated but not yet resolved against the catalog."""
    product_id: int | None
    quantity: Decimal
    name: str | None = None
    description: str | None = None
    unit_price_cents: int | None = None
    lot_id: int | None = None
    discount_percentage: Decimal | None = None
    discount_amount_cents: int | None = None
    # Internal snapshots (discharge billing passes what the medication log recorded)
    lot_number: str | None = None
    lot_expiration_date: date | None = None


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_int(key: str, value: Any) -> int:
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    # String input - must be plain digits (with optional leading minus)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{key} must be an integer")
        # Reject scientific notation (e.g., "1e15", "1E10")
        if 'e' in stripped.lower():
            raise ValidationError(f"{key} must be a plain integer (scientific notation not allowed)")
        # Reject decimal points (e.g., "12.5")
        if '.' in stripped:
            raise ValidationError(f"{key} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{key} must be an integer")
    # Reject floats explicitly
    if isinstance(value, float):
        raise ValidationError(f"{key} must be an integer, not a decimal")
    raise ValidationError(f"{key} must be an integer")


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    # Integers - strict validation to reject floats and scientific notation
    if isinstance(coltype, Integer):
        return _coerce_int(col.key, value)

    # Booleans
    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        raise ValidationError(f"{col.key} must be a boolean")

    # Decimals (quantities, percentages)
    if isinstance(coltype, Numeric):
        return to_decimal(value, col.key).quantize(Decimal(1).scaleb(-(coltype.scale or 0)))

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            if dt is None:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            return dt
        raise ValidationError(f"{col.key} must be a datetime")

    # Dates ("YYYY-MM-DD")
    if isinstance(coltype, Date):
        if isinstance(value, date):
            return value
        if isinstance(value, str):
            try:
                d = parse_iso_date(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be an ISO-8601 date")
            if d is None:
                raise ValidationError(f"{col.key} must be an ISO-8601 date")
            return d
        raise ValidationError(f"{col.key} must be a date")

    if isinstance(coltype, JSON):
        return value

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    # Default: leave as-is
    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if f not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        # NULL handling
        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def enforce_cents(key: str, value, *, allow_zero: bool = True) -> int:
    """Validate a money amount in cents (int, non-negative, bounded)."""
    cents = _coerce_int(key, value)
    if cents < 0 or (cents == 0 and not allow_zero):
        raise ValidationError(f"{key} must be {'>= 0' if allow_zero else '> 0'}")
    if cents > MAX_PRICE_CENTS:
        raise ValidationError(f"{key} cannot exceed {MAX_PRICE_CENTS}")
    return cents


def enforce_percentage(key: str, value) -> Decimal:
    pct = to_decimal(value, key)
    if pct < 0 or pct > 100:
        raise ValidationError(f"{key} must be between 0 and 100")
    return pct


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    if patch.get("sale_price_cents") is not None:
        enforce_cents("sale_price_cents", patch["sale_price_cents"])
    if patch.get("discount_percentage") is not None:
        enforce_percentage("discount_percentage", patch["discount_percentage"])
    if patch.get("low_stock_threshold") is not None and patch["low_stock_threshold"] < 0:
        raise ValidationError("low_stock_threshold must be >= 0")
    if patch.get("total_volume") is not None and patch["total_volume"] <= 0:
        raise ValidationError("total_volume must be > 0")
    if "category" in patch:
        if patch["category"] not in PRODUCT_CATEGORIES:
            raise ValidationError(f"category must be one of: {', '.join(PRODUCT_CATEGORIES)}")


def optional_int(item: dict, key: str) -> int | None:
    raw = item.get(key)
    if raw is None or raw == "":
        return None
    return _coerce_int(key, raw)


def parse_line_items(raw_items, *, allow_empty: bool = False) -> list[LineRequest]:
    """
    Validate the `items` array of a sale, edit or preview request.

    Each item needs a positive quantity and either a product_id or, for
    ad-hoc service lines, a name and unit_price_cents.
    """
    if raw_items is None:
        raw_items = []
    if not isinstance(raw_items, list):
        raise ValidationError("items must be a list")
    if not raw_items and not allow_empty:
        raise ValidationError("At least one item is required")
    if len(raw_items) > MAX_LINE_ITEMS:
        raise ValidationError(f"No more than {MAX_LINE_ITEMS} items per invoice")

    lines: list[LineRequest] = []
    for index, item in enumerate(raw_items):
        if not isinstance(item, dict):
            raise ValidationError(f"items[{index}] must be an object")

        product_id = optional_int(item, "product_id")
        quantity = to_quantity(item.get("quantity"), f"items[{index}].quantity")
        if quantity <= ZERO:
            raise ValidationError(f"items[{index}].quantity must be > 0")

        name = item.get("name")
        name = str(name).strip() if name is not None else None

        unit_price_cents = None
        if item.get("unit_price_cents") is not None:
            unit_price_cents = enforce_cents(f"items[{index}].unit_price_cents", item["unit_price_cents"])

        if product_id is None:
            if not name:
                raise ValidationError(f"items[{index}] needs a product_id or a name")
            if unit_price_cents is None:
                raise ValidationError(f"items[{index}].unit_price_cents is required for ad-hoc lines")

        discount_percentage = None
        if item.get("discount_percentage") is not None:
            discount_percentage = enforce_percentage(
                f"items[{index}].discount_percentage", item["discount_percentage"]
            )

        discount_amount_cents = None
        if item.get("discount_amount_cents") is not None:
            discount_amount_cents = enforce_cents(
                f"items[{index}].discount_amount_cents", item["discount_amount_cents"]
            )

        description = item.get("description")
        lines.append(
            LineRequest(
                product_id=product_id,
                quantity=quantity,
                name=name or None,
                description=str(description).strip() if description is not None else None,
                unit_price_cents=unit_price_cents,
                lot_id=optional_int(item, "lot_id"),
                discount_percentage=discount_percentage,
                discount_amount_cents=discount_amount_cents,
            )
        )
    return lines
