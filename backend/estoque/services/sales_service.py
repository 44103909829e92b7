# Overview: Sales order lifecycle; invoicing moves stock out and opens the receivable.

"""
Sales Order Service

LIFECYCLE:
  PENDENTE -> APROVADA -> FATURADA
      \\           \\
       +-> CANCELADA +-> CANCELADA

FATURADA is fulfillment. Invoicing runs in one transaction:
1. Pre-check every line against on-hand stock (nothing written on failure)
2. Status -> FATURADA (version-checked)
3. Guarded OUT movement per line; a race that empties stock after the
   pre-check aborts everything with InsufficientStockError
4. One PENDENTE AccountsReceivable for the order total

Only PENDENTE orders can be deleted.
"""

from __future__ import annotations

import logging

from sqlalchemy.orm import selectinload

from ..errors import (
    InsufficientStockError,
    InvalidStateError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from ..extensions import db
from ..models import AccountsReceivable, Product, SalesOrder, SalesOrderItem
from ..models.inventory import MOVEMENT_OUT
from ..models.sales import (
    RECEIVABLE_PENDENTE,
    SALES_ORDER_STATUSES,
    SO_APROVADA,
    SO_CANCELADA,
    SO_FATURADA,
    SO_PENDENTE,
)
from ..validation import parse_order_items
from .catalog_service import get_customer
from .concurrency import lock_for_update, run_atomic
from .document_service import next_document_number
from .stock_service import apply_movement, get_product

logger = logging.getLogger("estoque")


SALES_ORDER_TRANSITIONS: dict[str, frozenset[str]] = {
    SO_PENDENTE: frozenset({SO_APROVADA, SO_CANCELADA}),
    SO_APROVADA: frozenset({SO_FATURADA, SO_CANCELADA}),
    SO_FATURADA: frozenset(),
    SO_CANCELADA: frozenset(),
}


def get_sales_order(order_id: int, *, lock: bool = False) -> SalesOrder:
    query = db.session.query(SalesOrder).filter_by(id=order_id)
    if lock:
        query = lock_for_update(query)
    order = query.first()
    if order is None:
        raise NotFoundError(f"Sales order {order_id} not found", details={"sales_order_id": order_id})
    return order


def list_sales_orders(*, status: str | None = None) -> list[SalesOrder]:
    if status and status not in SALES_ORDER_STATUSES:
        raise ValidationError(f"Unknown status {status!r}")

    query = (
        db.session.query(SalesOrder)
        .options(selectinload(SalesOrder.items))
    )
    if status:
        query = query.filter(SalesOrder.status == status)
    return query.order_by(SalesOrder.created_at.desc(), SalesOrder.id.desc()).all()


def create_sales_order(
    customer_id: int,
    items,
    notes: str | None = None,
) -> SalesOrder:
    """
    Create a PENDENTE sales order. Stock is not touched until invoicing.

    Raises:
        ValidationError: empty items, bad quantity/price, duplicate product
        NotFoundError: customer or product does not exist
    """
    lines = parse_order_items(items)
    notes = notes.strip() if isinstance(notes, str) and notes.strip() else None

    def _op():
        get_customer(customer_id)
        for line in lines:
            get_product(line["product_id"])

        order = SalesOrder(
            code=next_document_number("SALES_ORDER"),
            customer_id=customer_id,
            status=SO_PENDENTE,
            total_value_cents=sum(l["quantity"] * l["unit_price_cents"] for l in lines),
            notes=notes,
        )
        order.items = [
            SalesOrderItem(
                product_id=l["product_id"],
                quantity=l["quantity"],
                unit_price_cents=l["unit_price_cents"],
            )
            for l in lines
        ]
        db.session.add(order)
        db.session.flush()

        logger.info(
            "sales_order.created",
            extra={"sales_order_id": order.id, "code": order.code, "total_value_cents": order.total_value_cents},
        )
        return order

    return run_atomic(_op)


def _check_stock(order: SalesOrder) -> None:
    """Fail before any write if a line cannot be served from current stock."""
    for item in order.items:
        product = db.session.query(Product).filter_by(id=item.product_id).populate_existing().first()
        available = product.quantity if product is not None else 0
        if product is None or available < item.quantity:
            raise InsufficientStockError(
                product_id=item.product_id,
                product_name=product.name if product is not None else None,
                available=available,
                required=item.quantity,
            )


def _invoice_locked(order: SalesOrder) -> None:
    """Fulfillment steps for an order already locked in the current transaction."""
    if order.status != SO_APROVADA:
        raise InvalidStateError(
            f"Only APROVADA orders can be invoiced (current: {order.status})",
            details={"sales_order_id": order.id, "status": order.status},
        )

    _check_stock(order)

    order.status = SO_FATURADA
    db.session.flush()

    reason = f"Venda {order.code}"
    for item in order.items:
        apply_movement(
            product_id=item.product_id,
            movement_type=MOVEMENT_OUT,
            quantity=item.quantity,
            reason=reason,
        )

    receivable = AccountsReceivable(
        sales_order_id=order.id,
        amount_cents=order.total_value_cents,
        status=RECEIVABLE_PENDENTE,
    )
    db.session.add(receivable)
    db.session.flush()

    logger.info(
        "sales_order.invoiced",
        extra={
            "sales_order_id": order.id,
            "code": order.code,
            "lines": len(order.items),
            "receivable_id": receivable.id,
            "amount_cents": receivable.amount_cents,
        },
    )


def check_transition(current_status: str, target_status: str) -> None:
    if target_status not in SALES_ORDER_STATUSES:
        raise ValidationError(f"Unknown status {target_status!r}")
    if target_status not in SALES_ORDER_TRANSITIONS.get(current_status, frozenset()):
        raise InvalidTransitionError(current_status, target_status)


def transition_sales_order(order_id: int, target_status: str) -> SalesOrder:
    """
    Move a sales order to target_status; FATURADA runs fulfillment.

    Raises:
        NotFoundError: order does not exist
        ValidationError: target_status is not a sales order status
        InvalidTransitionError: target not allowed from the current status
        InsufficientStockError: invoicing a line without enough stock
    """
    def _op():
        order = get_sales_order(order_id, lock=True)
        current = order.status
        check_transition(current, target_status)

        if target_status == SO_FATURADA:
            _invoice_locked(order)
        else:
            order.status = target_status
            db.session.flush()
            logger.info(
                "sales_order.transitioned",
                extra={"sales_order_id": order.id, "from": current, "to": target_status},
            )
        return order

    return run_atomic(_op)


def delete_sales_order(order_id: int) -> None:
    def _op():
        order = get_sales_order(order_id, lock=True)
        if order.status != SO_PENDENTE:
            raise InvalidStateError(
                f"Cannot delete {order.status} sales order. Only PENDENTE orders can be deleted.",
                details={"sales_order_id": order.id, "status": order.status},
            )
        db.session.delete(order)
        logger.info("sales_order.deleted", extra={"sales_order_id": order_id, "code": order.code})

    run_atomic(_op)
