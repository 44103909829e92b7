# Overview: Stock ledger and on-hand counter; the single write path for product quantity.

"""
Estoque Stock Invariants (authoritative)

Ledger:
- stock_movements is append-only: rows are inserted, never updated or deleted.
- Every change to Product.quantity happens through apply_movement(), which
  inserts the movement and adjusts the counter in the caller's transaction.
- quantity == SUM(IN) - SUM(OUT) for every product (checked by reconcile_stock).

Non-negative on OUT:
- OUT is a conditional UPDATE (... WHERE quantity >= n). If another
  transaction consumed the stock between any earlier read and this write,
  zero rows match and InsufficientStockError aborts the whole operation.

Call sites:
- record_stock_movement(): manual IN/OUT adjustment (own transaction)
- receive_service.receive_goods(): IN per received line
- sales_service fulfillment: OUT per order line
"""

from __future__ import annotations

import logging

from flask import current_app
from sqlalchemy import case, func, update

from ..errors import InsufficientStockError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Product, StockMovement
from ..models.inventory import MOVEMENT_IN, MOVEMENT_OUT, MOVEMENT_TYPES
from ..validation import MAX_INTEGER, MAX_QUANTITY, coerce_int
from .concurrency import run_atomic

logger = logging.getLogger("estoque")


def get_product(product_id: int, *, include_deleted: bool = False) -> Product:
    product = db.session.query(Product).filter_by(id=product_id).first()
    if product is None or (product.deleted_at is not None and not include_deleted):
        raise NotFoundError(f"Product {product_id} not found", details={"product_id": product_id})
    return product


def _validate_movement(movement_type, quantity) -> tuple[str, int]:
    if movement_type not in MOVEMENT_TYPES:
        raise ValidationError("type must be IN or OUT")
    quantity = coerce_int(quantity, "quantity")
    if quantity <= 0:
        raise ValidationError("quantity must be positive")
    if quantity > MAX_QUANTITY:
        raise ValidationError(f"quantity cannot exceed {MAX_QUANTITY}")
    return movement_type, quantity


def apply_movement(
    *,
    product_id: int,
    movement_type: str,
    quantity: int,
    reason: str | None = None,
) -> StockMovement:
    """
    Append one movement and adjust the on-hand counter. No commit.

    Runs inside the caller's transaction so the movement, the counter and
    whatever document triggered them commit or roll back together.

    Raises:
        ValidationError: bad type or quantity, or IN would overflow the counter
        NotFoundError: product does not exist
        InsufficientStockError: OUT would drive quantity below zero
    """
    movement_type, quantity = _validate_movement(movement_type, quantity)

    if movement_type == MOVEMENT_IN:
        stmt = (
            update(Product)
            .where(Product.id == product_id, Product.quantity <= MAX_INTEGER - quantity)
            .values(quantity=Product.quantity + quantity)
        )
    else:
        stmt = (
            update(Product)
            .where(Product.id == product_id, Product.quantity >= quantity)
            .values(quantity=Product.quantity - quantity)
        )

    result = db.session.execute(stmt.execution_options(synchronize_session=False))
    if not result.rowcount:
        product = db.session.query(Product).filter_by(id=product_id).populate_existing().first()
        if product is None:
            raise NotFoundError(f"Product {product_id} not found", details={"product_id": product_id})
        if movement_type == MOVEMENT_IN:
            raise ValidationError(
                f"Stock for product {product_id} cannot exceed {MAX_INTEGER}",
                details={"product_id": product_id, "quantity": product.quantity, "incoming": quantity},
            )
        raise InsufficientStockError(
            product_id=product.id,
            product_name=product.name,
            available=product.quantity,
            required=quantity,
        )

    movement = StockMovement(
        product_id=product_id,
        type=movement_type,
        quantity=quantity,
        reason=reason,
    )
    db.session.add(movement)
    db.session.flush()

    # The counter was changed with a bulk UPDATE; drop any stale in-session copy
    product = db.session.get(Product, product_id)
    if product is not None:
        db.session.expire(product, ["quantity", "updated_at"])

    logger.info(
        "stock.movement",
        extra={
            "product_id": product_id,
            "type": movement_type,
            "qty": quantity,
            "reason": reason,
            "movement_id": movement.id,
        },
    )
    return movement


def record_stock_movement(
    product_id: int,
    movement_type: str,
    quantity,
    reason: str | None = None,
) -> StockMovement:
    """
    Manual stock adjustment (operator-entered IN or OUT).

    Validation happens before any write; the movement and the counter update
    commit together.
    """
    product_id = coerce_int(product_id, "product_id")
    movement_type, quantity = _validate_movement(movement_type, quantity)
    reason = reason.strip() if isinstance(reason, str) and reason.strip() else None

    def _op():
        product = get_product(product_id)
        if movement_type == MOVEMENT_OUT and product.quantity < quantity:
            raise InsufficientStockError(
                product_id=product.id,
                product_name=product.name,
                available=product.quantity,
                required=quantity,
            )
        return apply_movement(
            product_id=product.id,
            movement_type=movement_type,
            quantity=quantity,
            reason=reason,
        )

    return run_atomic(_op)


def list_stock_movements(
    *,
    product_id: int | None = None,
    since=None,
    limit: int | None = None,
) -> list[StockMovement]:
    """Newest movements first, optionally for one product and/or since a datetime."""
    if limit is None:
        limit = current_app.config.get("MOVEMENTS_LIST_LIMIT", 100)

    q = db.session.query(StockMovement)
    if product_id is not None:
        q = q.filter(StockMovement.product_id == product_id)
    if since is not None:
        q = q.filter(StockMovement.created_at >= since)

    return q.order_by(
        StockMovement.created_at.desc(),
        StockMovement.id.desc(),
    ).limit(limit).all()


def get_ledger_quantity(product_id: int) -> int:
    """On-hand quantity re-derived from the ledger (SUM(IN) - SUM(OUT))."""
    signed = case(
        (StockMovement.type == MOVEMENT_IN, StockMovement.quantity),
        else_=-StockMovement.quantity,
    )
    q = db.session.query(func.coalesce(func.sum(signed), 0)).filter(
        StockMovement.product_id == product_id
    )
    return int(q.scalar() or 0)


def reconcile_stock() -> list[dict]:
    """
    Compare every product's counter with its ledger.

    Returns one entry per product whose stored quantity drifted from the
    ledger sum. An empty list means the invariant holds everywhere.
    """
    signed = case(
        (StockMovement.type == MOVEMENT_IN, StockMovement.quantity),
        else_=-StockMovement.quantity,
    )
    ledger = dict(
        db.session.query(StockMovement.product_id, func.sum(signed))
        .group_by(StockMovement.product_id)
        .all()
    )

    drift = []
    for product in db.session.query(Product).order_by(Product.id.asc()).all():
        ledger_qty = int(ledger.get(product.id) or 0)
        if ledger_qty != product.quantity:
            drift.append({
                "product_id": product.id,
                "sku": product.sku,
                "quantity": product.quantity,
                "ledger_quantity": ledger_qty,
                "difference": product.quantity - ledger_qty,
            })

    if drift:
        logger.warning("stock.reconcile.drift", extra={"products": len(drift)})
    return drift


def list_low_stock() -> list[Product]:
    """Active products at or below their minimum stock, emptiest first."""
    return (
        db.session.query(Product)
        .filter(Product.deleted_at.is_(None), Product.quantity <= Product.min_stock)
        .order_by(Product.quantity.asc(), Product.name.asc())
        .all()
    )
