from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

from sqlalchemy import Boolean, Integer, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .errors import InvalidInputError


# Maximum price: 9,999,999.99 (999,999,999 cents)
# This prevents database overflow issues and nonsensical prices
MAX_PRICE_CENTS = 999_999_999

# Largest quantity accepted on one sale line
MAX_QUANTITY = 1_000_000

# Sale totals are stored in a signed 64-bit integer column
MAX_SALE_TOTAL_CENTS = 2**63 - 1

# Rule values are stored as Numeric(12, 4)
MAX_RULE_VALUE = Decimal("99999999.9999")


class ValidationError(InvalidInputError):
    """400-level input problem."""


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
class SaleItemInput:
    product_id: int
    quantity: int
    sold_at_cents: int


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def coerce_int(value: Any, field: str) -> int:
    """
    Strict integer coercion: rejects bools, floats, decimals and
    scientific notation ("1e3"), accepts ints and plain digit strings.
    """
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        if 'e' in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        if '.' in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    if isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    raise ValidationError(f"{field} must be an integer")


def require_positive_int(value: Any, field: str) -> int:
    if value is None:
        raise ValidationError(f"{field} is required")
    n = coerce_int(value, field)
    if n <= 0:
        raise ValidationError(f"{field} must be > 0")
    return n


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        return coerce_int(value, col.key)

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        raise ValidationError(f"{col.key} must be true or false")

    if isinstance(coltype, (String, Text)):
        return str(value).strip()

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

    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def enforce_rules_product(patch: dict) -> None:
    """Price and stock ranges that column metadata cannot express."""
    for field in ("base_price_cents", "selling_price_cents"):
        if field in patch and patch[field] is not None:
            price = patch[field]
            if price < 0:
                raise ValidationError(f"{field} must be >= 0")
            if price > MAX_PRICE_CENTS:
                raise ValidationError(f"{field} cannot exceed {MAX_PRICE_CENTS}")

    if "stock_quantity" in patch and patch["stock_quantity"] is not None:
        if patch["stock_quantity"] < 0:
            raise ValidationError("stock_quantity must be >= 0")


def parse_rule_value(value: Any) -> Decimal:
    """Rule value as a non-negative Decimal (percent or currency units)."""
    if value is None or isinstance(value, bool):
        raise ValidationError("value must be a number")
    try:
        parsed = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError("value must be a number")
    if not parsed.is_finite():
        raise ValidationError("value must be a finite number")
    if parsed < 0:
        raise ValidationError("value must be >= 0")
    if parsed > MAX_RULE_VALUE:
        raise ValidationError(f"value cannot exceed {MAX_RULE_VALUE}")
    return parsed


def parse_sale_items(raw_items: Any) -> list[SaleItemInput]:
    """
    Validate the `items` array of a sale request.

    Each item needs product_id, quantity > 0 and sold_at_cents > 0.
    Errors name the offending index so the client can highlight the line.
    """
    if not isinstance(raw_items, list) or not raw_items:
        raise ValidationError("items must be a non-empty list")

    items: list[SaleItemInput] = []
    for index, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            raise ValidationError(f"items[{index}] must be an object")
        try:
            items.append(SaleItemInput(
                product_id=require_positive_int(raw.get("product_id"), "product_id"),
                quantity=require_positive_int(raw.get("quantity"), "quantity"),
                sold_at_cents=require_positive_int(raw.get("sold_at_cents"), "sold_at_cents"),
            ))
        except ValidationError as e:
            raise ValidationError(str(e), details={"index": index})

        if items[-1].quantity > MAX_QUANTITY:
            raise ValidationError(
                f"quantity cannot exceed {MAX_QUANTITY}",
                details={"index": index},
            )
        if items[-1].sold_at_cents > MAX_PRICE_CENTS:
            raise ValidationError(
                f"sold_at_cents cannot exceed {MAX_PRICE_CENTS}",
                details={"index": index},
            )
    return items
