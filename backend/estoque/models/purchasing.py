from __future__ import annotations

from ..extensions import db
from estoque.time_utils import to_utc_z

PO_PENDENTE = "PENDENTE"
PO_APROVADA = "APROVADA"
PO_EM_TRANSITO = "EM_TRANSITO"
PO_RECEBIDA = "RECEBIDA"
PO_CANCELADA = "CANCELADA"
PURCHASE_ORDER_STATUSES = (PO_PENDENTE, PO_APROVADA, PO_EM_TRANSITO, PO_RECEBIDA, PO_CANCELADA)

PAYABLE_PENDENTE = "PENDENTE"
PAYABLE_PAGO = "PAGO"


class PurchaseOrder(db.Model):
    """
    Supplier order document.

    After creation only status (and item received_qty) change. version_id
    makes every status write a compare-and-swap: a concurrent writer that
    loaded the same version gets StaleDataError instead of silently
    overwriting.
    """
    __tablename__ = "purchase_orders"
    __table_args__ = (
        db.Index("ix_purchase_orders_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    # Human-readable code (e.g., "PO-0001")
    code = db.Column(db.String(32), nullable=False, unique=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=False, index=True)

    status = db.Column(db.String(16), nullable=False, default=PO_PENDENTE, index=True)
    # Fixed at creation; receipts never recompute it
    total_value_cents = db.Column(db.Integer, nullable=False)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    supplier = db.relationship("Supplier", backref=db.backref("purchase_orders", lazy=True))
    items = db.relationship(
        "PurchaseOrderItem",
        backref="purchase_order",
        cascade="all, delete-orphan",
        order_by="PurchaseOrderItem.id",
        lazy=True,
    )
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def is_fully_received(self) -> bool:
        return all(item.received_qty >= item.quantity for item in self.items)

    def to_dict(self, *, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "code": self.code,
            "supplier_id": self.supplier_id,
            "supplier": {"id": self.supplier.id, "name": self.supplier.name} if self.supplier else None,
            "status": self.status,
            "total_value_cents": self.total_value_cents,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "version_id": self.version_id,
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class PurchaseOrderItem(db.Model):
    __tablename__ = "purchase_order_items"
    __table_args__ = (
        db.UniqueConstraint("purchase_order_id", "product_id", name="uq_po_items_order_product"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    purchase_order_id = db.Column(db.Integer, db.ForeignKey("purchase_orders.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    # Last blind count reported for this line (overwritten per receipt)
    received_qty = db.Column(db.Integer, nullable=False, default=0)

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product": {"name": self.product.name, "sku": self.product.sku} if self.product else None,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "line_total_cents": self.quantity * self.unit_price_cents,
            "received_qty": self.received_qty,
        }


class GoodsReceipt(db.Model):
    """One receiving event (blind count) against a purchase order."""
    __tablename__ = "goods_receipts"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    purchase_order_id = db.Column(db.Integer, db.ForeignKey("purchase_orders.id"), nullable=False, index=True)
    notes = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    purchase_order = db.relationship("PurchaseOrder", backref=db.backref("goods_receipts", lazy=True))
    items = db.relationship(
        "GoodsReceiptItem",
        backref="goods_receipt",
        cascade="all, delete-orphan",
        order_by="GoodsReceiptItem.id",
        lazy=True,
    )

    @property
    def divergences(self) -> list:
        return [item for item in self.items if item.has_divergence]

    def to_dict(self) -> dict:
        po = self.purchase_order
        return {
            "id": self.id,
            "purchase_order_id": self.purchase_order_id,
            "purchase_order": {
                "code": po.code,
                "supplier": {"name": po.supplier.name} if po.supplier else None,
            } if po else None,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "items": [item.to_dict() for item in self.items],
        }


class GoodsReceiptItem(db.Model):
    __tablename__ = "goods_receipt_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    goods_receipt_id = db.Column(db.Integer, db.ForeignKey("goods_receipts.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    received_qty = db.Column(db.Integer, nullable=False)
    has_divergence = db.Column(db.Boolean, nullable=False, default=False)

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product": {"name": self.product.name, "sku": self.product.sku} if self.product else None,
            "received_qty": self.received_qty,
            "has_divergence": self.has_divergence,
        }


class AccountsPayable(db.Model):
    """
    Amount owed to a supplier for one goods receipt.

    One row per receiving event, so an order received in two deliveries has
    two payables. amount_cents is what was actually received at the ordered
    unit price, not the order total.
    """
    __tablename__ = "accounts_payable"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    purchase_order_id = db.Column(db.Integer, db.ForeignKey("purchase_orders.id"), nullable=False, index=True)
    amount_cents = db.Column(db.Integer, nullable=False)
    status = db.Column(db.String(16), nullable=False, default=PAYABLE_PENDENTE, index=True)

    due_date = db.Column(db.DateTime(timezone=True), nullable=True)
    paid_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    purchase_order = db.relationship("PurchaseOrder", backref=db.backref("payables", lazy=True))

    def to_dict(self) -> dict:
        po = self.purchase_order
        return {
            "id": self.id,
            "purchase_order_id": self.purchase_order_id,
            "purchase_order": {
                "code": po.code,
                "supplier": {"name": po.supplier.name} if po.supplier else None,
            } if po else None,
            "amount_cents": self.amount_cents,
            "status": self.status,
            "due_date": to_utc_z(self.due_date),
            "paid_at": to_utc_z(self.paid_at),
            "created_at": to_utc_z(self.created_at),
        }
