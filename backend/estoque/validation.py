from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Boolean, Integer, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .errors import ValidationError


# Maximum price: 9,999,999.99 (999,999,999 cents)
MAX_PRICE_CENTS = 999_999_999
# Maximum units on one order line, receipt line or manual movement
MAX_QUANTITY = 1_000_000
# Largest value an INTEGER column holds (stock counter, order and payable totals)
MAX_INTEGER = 2_147_483_647


def check_total_cents(total: int, field: str) -> int:
    if total > MAX_INTEGER:
        raise ValidationError(f"{field} cannot exceed {MAX_INTEGER}")
    return total


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def coerce_int(value: Any, field: str) -> int:
    """Strict integer coercion: rejects bools, floats, decimals and scientific notation."""
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    # String input - must be plain digits (with optional leading minus)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        # Reject scientific notation (e.g., "1e15", "1E10")
        if 'e' in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        # Reject decimal points (e.g., "12.5")
        if '.' in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    if isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    raise ValidationError(f"{field} must be an integer")


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        return coerce_int(value, col.key)

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        return bool(value)

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

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        # Optional text columns store NULL rather than ""
        if isinstance(val, str) and val == "" and col.nullable:
            val = None

        patch[k] = val

    return patch


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    if "price_cents" in patch and patch["price_cents"] is not None:
        price = patch["price_cents"]
        if price < 1:
            raise ValidationError("price_cents must be >= 1")
        if price > MAX_PRICE_CENTS:
            raise ValidationError(f"price_cents cannot exceed {MAX_PRICE_CENTS}")

    for field in ("quantity", "min_stock"):
        if field in patch and patch[field] is not None:
            if patch[field] < 0:
                raise ValidationError(f"{field} cannot be negative")
            if patch[field] > MAX_QUANTITY:
                raise ValidationError(f"{field} cannot exceed {MAX_QUANTITY}")


def parse_order_items(items: Any) -> list[dict]:
    """
    Normalize order lines ``[{product_id, quantity, unit_price_cents}]``.

    Rejects an empty list, quantities outside 1..MAX_QUANTITY, prices below
    one cent, the same product appearing on two lines and an order total
    too large to store.
    """
    if not isinstance(items, list) or not items:
        raise ValidationError("At least one item is required")

    parsed = []
    seen: set[int] = set()
    total_cents = 0
    for index, raw in enumerate(items):
        if not isinstance(raw, dict):
            raise ValidationError(f"items[{index}] must be an object")
        if raw.get("product_id") is None:
            raise ValidationError(f"items[{index}].product_id is required")

        product_id = coerce_int(raw.get("product_id"), f"items[{index}].product_id")
        quantity = coerce_int(raw.get("quantity"), f"items[{index}].quantity")
        unit_price = coerce_int(raw.get("unit_price_cents"), f"items[{index}].unit_price_cents")

        if quantity <= 0:
            raise ValidationError(f"items[{index}].quantity must be > 0")
        if quantity > MAX_QUANTITY:
            raise ValidationError(f"items[{index}].quantity cannot exceed {MAX_QUANTITY}")
        if unit_price < 1:
            raise ValidationError(f"items[{index}].unit_price_cents must be >= 1")
        if unit_price > MAX_PRICE_CENTS:
            raise ValidationError(f"items[{index}].unit_price_cents cannot exceed {MAX_PRICE_CENTS}")
        if product_id in seen:
            raise ValidationError(f"Product {product_id} appears on more than one line")
        seen.add(product_id)

        parsed.append({
            "product_id": product_id,
            "quantity": quantity,
            "unit_price_cents": unit_price,
        })
        total_cents += quantity * unit_price

    check_total_cents(total_cents, "Order total")
    return parsed


def parse_receipt_items(items: Any) -> list[dict]:
    """Normalize blind-count lines ``[{product_id, received_qty}]`` (0 <= received_qty <= MAX_QUANTITY)."""
    if not isinstance(items, list) or not items:
        raise ValidationError("At least one item is required")

    parsed = []
    seen: set[int] = set()
    for index, raw in enumerate(items):
        if not isinstance(raw, dict):
            raise ValidationError(f"items[{index}] must be an object")
        if raw.get("product_id") is None:
            raise ValidationError(f"items[{index}].product_id is required")

        product_id = coerce_int(raw.get("product_id"), f"items[{index}].product_id")
        received_qty = coerce_int(raw.get("received_qty"), f"items[{index}].received_qty")

        if received_qty < 0:
            raise ValidationError(f"items[{index}].received_qty cannot be negative")
        if received_qty > MAX_QUANTITY:
            raise ValidationError(f"items[{index}].received_qty cannot exceed {MAX_QUANTITY}")
        if product_id in seen:
            raise ValidationError(f"Product {product_id} appears on more than one line")
        seen.add(product_id)

        parsed.append({"product_id": product_id, "received_qty": received_qty})
    return parsed
