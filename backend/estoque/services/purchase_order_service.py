# Overview: Purchase order lifecycle (creation, status transitions, deletion).

"""
Purchase Order Service

LIFECYCLE:
1. PENDENTE: Created, awaiting approval (only state that can be deleted)
2. APROVADA: Approved, goods may already be received
3. EM_TRANSITO: In transit or partially received
4. RECEBIDA: Every line received in full (terminal)
5. CANCELADA: Cancelled before completion (terminal)

RECEBIDA is reached through receive_service.receive_goods(), which owns the
stock, payable and status writes of a receipt in one transaction. A manual
transition into RECEBIDA is only accepted when the lines already show full
receipt, so "RECEBIDA iff every received_qty >= quantity" always holds.

No stock or ledger effect happens here.
"""

from __future__ import annotations

import logging

from sqlalchemy.orm import selectinload

from ..errors import InvalidStateError, InvalidTransitionError, NotFoundError, ValidationError
from ..extensions import db
from ..models import PurchaseOrder, PurchaseOrderItem
from ..models.purchasing import (
    PO_APROVADA,
    PO_CANCELADA,
    PO_EM_TRANSITO,
    PO_PENDENTE,
    PO_RECEBIDA,
    PURCHASE_ORDER_STATUSES,
)
from ..validation import parse_order_items
from .catalog_service import get_supplier
from .concurrency import lock_for_update, run_atomic
from .document_service import next_document_number
from .stock_service import get_product

logger = logging.getLogger("estoque")


PURCHASE_ORDER_TRANSITIONS: dict[str, frozenset[str]] = {
    PO_PENDENTE: frozenset({PO_APROVADA, PO_CANCELADA}),
    PO_APROVADA: frozenset({PO_EM_TRANSITO, PO_CANCELADA}),
    PO_EM_TRANSITO: frozenset({PO_RECEBIDA, PO_CANCELADA}),
    PO_RECEBIDA: frozenset(),
    PO_CANCELADA: frozenset(),
}

# Statuses in which goods may be received
RECEIVABLE_STATUSES = frozenset({PO_APROVADA, PO_EM_TRANSITO})


def get_purchase_order(order_id: int, *, lock: bool = False) -> PurchaseOrder:
    """
    Raises:
        NotFoundError: no such order
    """
    query = db.session.query(PurchaseOrder).filter_by(id=order_id)
    if lock:
        query = lock_for_update(query)
    order = query.first()
    if order is None:
        raise NotFoundError(f"Purchase order {order_id} not found", details={"purchase_order_id": order_id})
    return order


def list_purchase_orders(*, status: str | None = None) -> list[dict]:
    """Newest first, each with its receipt count."""
    if status and status not in PURCHASE_ORDER_STATUSES:
        raise ValidationError(f"Unknown status {status!r}")

    query = (
        db.session.query(PurchaseOrder)
        .options(selectinload(PurchaseOrder.items))
    )
    if status:
        query = query.filter(PurchaseOrder.status == status)

    rows = []
    for order in query.order_by(PurchaseOrder.created_at.desc(), PurchaseOrder.id.desc()).all():
        data = order.to_dict()
        data["goods_receipt_count"] = len(order.goods_receipts)
        rows.append(data)
    return rows


def get_purchase_order_detail(order_id: int) -> dict:
    """Order with items, goods receipts and payables."""
    order = get_purchase_order(order_id)
    result = order.to_dict()
    result["goods_receipts"] = [r.to_dict() for r in order.goods_receipts]
    result["payables"] = [p.to_dict() for p in order.payables]
    return result


def create_purchase_order(
    supplier_id: int,
    items,
    notes: str | None = None,
) -> PurchaseOrder:
    """
    Create a PENDENTE purchase order.

    Args:
        supplier_id: Supplier placing the order (must exist)
        items: [{product_id, quantity > 0, unit_price_cents >= 1}, ...]
        notes: Optional free text

    Returns:
        Created PurchaseOrder with items

    Raises:
        ValidationError: empty items, bad quantity/price, duplicate product
        NotFoundError: supplier or product does not exist
    """
    lines = parse_order_items(items)
    notes = notes.strip() if isinstance(notes, str) and notes.strip() else None

    def _op():
        get_supplier(supplier_id)
        for line in lines:
            get_product(line["product_id"])

        order = PurchaseOrder(
            code=next_document_number("PURCHASE_ORDER"),
            supplier_id=supplier_id,
            status=PO_PENDENTE,
            total_value_cents=sum(l["quantity"] * l["unit_price_cents"] for l in lines),
            notes=notes,
        )
        order.items = [
            PurchaseOrderItem(
                product_id=l["product_id"],
                quantity=l["quantity"],
                unit_price_cents=l["unit_price_cents"],
                received_qty=0,
            )
            for l in lines
        ]
        db.session.add(order)
        db.session.flush()

        logger.info(
            "purchase_order.created",
            extra={"purchase_order_id": order.id, "code": order.code, "total_value_cents": order.total_value_cents},
        )
        return order

    return run_atomic(_op)


def check_transition(current_status: str, target_status: str) -> None:
    if target_status not in PURCHASE_ORDER_STATUSES:
        raise ValidationError(f"Unknown status {target_status!r}")
    if target_status not in PURCHASE_ORDER_TRANSITIONS.get(current_status, frozenset()):
        raise InvalidTransitionError(current_status, target_status)


def transition_purchase_order(order_id: int, target_status: str) -> PurchaseOrder:
    """
    Move a purchase order to target_status.

    Raises:
        NotFoundError: order does not exist
        ValidationError: target_status is not a purchase order status
        InvalidTransitionError: target not allowed from the current status
        InvalidStateError: RECEBIDA requested while lines are not fully received
    """
    def _op():
        order = get_purchase_order(order_id, lock=True)
        current = order.status
        check_transition(current, target_status)

        if target_status == PO_RECEBIDA and not order.is_fully_received:
            raise InvalidStateError(
                "Purchase order has lines that were not fully received; register a goods receipt instead",
                details={"purchase_order_id": order.id, "status": current},
            )

        order.status = target_status
        db.session.flush()

        logger.info(
            "purchase_order.transitioned",
            extra={"purchase_order_id": order.id, "from": current, "to": target_status},
        )
        return order

    return run_atomic(_op)


def delete_purchase_order(order_id: int) -> None:
    """
    Hard-delete a PENDENTE purchase order with its items.

    Raises:
        NotFoundError: order does not exist
        InvalidStateError: order already left PENDENTE
    """
    def _op():
        order = get_purchase_order(order_id, lock=True)
        if order.status != PO_PENDENTE:
            raise InvalidStateError(
                f"Cannot delete {order.status} purchase order. Only PENDENTE orders can be deleted.",
                details={"purchase_order_id": order.id, "status": order.status},
            )
        db.session.delete(order)
        logger.info("purchase_order.deleted", extra={"purchase_order_id": order_id, "code": order.code})

    run_atomic(_op)
