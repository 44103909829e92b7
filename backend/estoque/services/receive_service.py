# Overview: Goods receipts against purchase orders; stock IN, cost update and payable in one transaction.

"""
Goods Receipt Service

A receipt is a blind count: the operator reports how many units of each
product arrived, without seeing the ordered quantities. Every receipt is an
independent event with its own stock movements and its own payable.

POSTING (one transaction, all or nothing):
1. Match each counted product against the order lines
2. Flag divergence (count != ordered, or product not on the order)
3. Persist GoodsReceipt + items
4. Overwrite received_qty on matched lines with the latest count
5. Order status becomes RECEBIDA when every line is fully received,
   EM_TRANSITO otherwise
6. Stock IN per counted product, cost price refreshed from the order
7. One PENDENTE AccountsPayable for the received value of matched lines

SERIALIZATION: the order row is locked and its version_id is bumped on every
receipt, so two concurrent receipts on one order cannot both commit.
"""

from __future__ import annotations

import logging

from sqlalchemy.orm import selectinload
from sqlalchemy.orm.attributes import flag_modified

from ..errors import InvalidStateError, NotFoundError
from ..extensions import db
from ..models import AccountsPayable, GoodsReceipt, GoodsReceiptItem
from ..models.inventory import MOVEMENT_IN
from ..models.purchasing import PAYABLE_PENDENTE, PO_EM_TRANSITO, PO_RECEBIDA
from ..validation import check_total_cents, parse_receipt_items
from .concurrency import run_atomic
from .purchase_order_service import RECEIVABLE_STATUSES, get_purchase_order
from .stock_service import apply_movement, get_product

logger = logging.getLogger("estoque")


def receive_goods(
    purchase_order_id: int,
    items,
    notes: str | None = None,
) -> dict:
    """
    Register a goods receipt for a purchase order.

    Args:
        purchase_order_id: Order being received (APROVADA or EM_TRANSITO)
        items: [{product_id, received_qty >= 0}, ...]
        notes: Optional free text

    Returns:
        {"receipt": GoodsReceipt, "divergences": [GoodsReceiptItem, ...]}

    Raises:
        ValidationError: malformed items, or a payable too large to store
        NotFoundError: order or counted product does not exist
        InvalidStateError: order is not receivable (PENDENTE, RECEBIDA, CANCELADA)
        ConcurrencyError: another receipt on the same order committed first
    """
    counted = parse_receipt_items(items)
    notes = notes.strip() if isinstance(notes, str) and notes.strip() else None

    def _op():
        order = get_purchase_order(purchase_order_id, lock=True)
        if order.status not in RECEIVABLE_STATUSES:
            raise InvalidStateError(
                f"Cannot receive goods for a {order.status} purchase order",
                details={"purchase_order_id": order.id, "status": order.status},
            )

        lines = {line.product_id: line for line in order.items}

        receipt = GoodsReceipt(purchase_order_id=order.id, notes=notes)
        payable_cents = 0
        for entry in counted:
            product_id = entry["product_id"]
            qty = entry["received_qty"]
            line = lines.get(product_id)
            if line is None:
                # Not on the order: still counted and stocked, never paid
                get_product(product_id)
                diverges = True
            else:
                diverges = qty != line.quantity
                payable_cents += qty * line.unit_price_cents
                line.received_qty = qty

            receipt.items.append(
                GoodsReceiptItem(product_id=product_id, received_qty=qty, has_divergence=diverges)
            )

        check_total_cents(payable_cents, "Payable amount")
        db.session.add(receipt)

        previous_status = order.status
        order.status = PO_RECEBIDA if order.is_fully_received else PO_EM_TRANSITO
        # Force the versioned UPDATE even when the status value is unchanged
        flag_modified(order, "status")
        db.session.flush()

        reason = f"Recebimento {order.code}"
        for entry in counted:
            if entry["received_qty"] <= 0:
                continue
            apply_movement(
                product_id=entry["product_id"],
                movement_type=MOVEMENT_IN,
                quantity=entry["received_qty"],
                reason=reason,
            )
            line = lines.get(entry["product_id"])
            if line is not None:
                product = get_product(entry["product_id"], include_deleted=True)
                product.cost_price_cents = line.unit_price_cents

        payable = AccountsPayable(
            purchase_order_id=order.id,
            amount_cents=payable_cents,
            status=PAYABLE_PENDENTE,
        )
        db.session.add(payable)
        db.session.flush()

        divergences = receipt.divergences
        logger.info(
            "purchase_order.received",
            extra={
                "purchase_order_id": order.id,
                "code": order.code,
                "goods_receipt_id": receipt.id,
                "from": previous_status,
                "to": order.status,
                "divergences": len(divergences),
                "payable_cents": payable_cents,
            },
        )
        return {"receipt": receipt, "divergences": divergences}

    return run_atomic(_op)


def get_goods_receipt(receipt_id: int) -> GoodsReceipt:
    receipt = db.session.query(GoodsReceipt).filter_by(id=receipt_id).first()
    if receipt is None:
        raise NotFoundError(f"Goods receipt {receipt_id} not found", details={"goods_receipt_id": receipt_id})
    return receipt


def list_goods_receipts(*, purchase_order_id: int | None = None) -> list[GoodsReceipt]:
    """Newest receipts first, optionally for one purchase order."""
    q = db.session.query(GoodsReceipt).options(selectinload(GoodsReceipt.items))
    if purchase_order_id is not None:
        q = q.filter(GoodsReceipt.purchase_order_id == purchase_order_id)
    return q.order_by(GoodsReceipt.created_at.desc(), GoodsReceipt.id.desc()).all()
