from __future__ import annotations

from ..extensions import db
from estoque.time_utils import to_utc_z

SO_PENDENTE = "PENDENTE"
SO_APROVADA = "APROVADA"
SO_FATURADA = "FATURADA"
SO_CANCELADA = "CANCELADA"
SALES_ORDER_STATUSES = (SO_PENDENTE, SO_APROVADA, SO_FATURADA, SO_CANCELADA)

RECEIVABLE_PENDENTE = "PENDENTE"
RECEIVABLE_RECEBIDO = "RECEBIDO"


class SalesOrder(db.Model):
    """
    Customer order document.

    FATURADA is the fulfillment event: stock leaves and a receivable is
    created in the same transaction as the status write.
    """
    __tablename__ = "sales_orders"
    __table_args__ = (
        db.Index("ix_sales_orders_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    # Human-readable code (e.g., "VD-0001")
    code = db.Column(db.String(32), nullable=False, unique=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)

    status = db.Column(db.String(16), nullable=False, default=SO_PENDENTE, index=True)
    total_value_cents = db.Column(db.Integer, nullable=False)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    customer = db.relationship("Customer", backref=db.backref("sales_orders", lazy=True))
    items = db.relationship(
        "SalesOrderItem",
        backref="sales_order",
        cascade="all, delete-orphan",
        order_by="SalesOrderItem.id",
        lazy=True,
    )
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self, *, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "code": self.code,
            "customer_id": self.customer_id,
            "customer": {"id": self.customer.id, "name": self.customer.name} if self.customer else None,
            "status": self.status,
            "total_value_cents": self.total_value_cents,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "version_id": self.version_id,
            "receivable": self.receivable.to_dict(include_order=False) if self.receivable else None,
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class SalesOrderItem(db.Model):
    __tablename__ = "sales_order_items"
    __table_args__ = (
        db.UniqueConstraint("sales_order_id", "product_id", name="uq_so_items_order_product"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sales_order_id = db.Column(db.Integer, db.ForeignKey("sales_orders.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product": {"name": self.product.name, "sku": self.product.sku} if self.product else None,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "line_total_cents": self.quantity * self.unit_price_cents,
        }


class AccountsReceivable(db.Model):
    """Amount owed by the customer of an invoiced sales order (one per order)."""
    __tablename__ = "accounts_receivable"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sales_order_id = db.Column(db.Integer, db.ForeignKey("sales_orders.id"), nullable=False, unique=True)
    amount_cents = db.Column(db.Integer, nullable=False)
    status = db.Column(db.String(16), nullable=False, default=RECEIVABLE_PENDENTE, index=True)

    due_date = db.Column(db.DateTime(timezone=True), nullable=True)
    received_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    sales_order = db.relationship(
        "SalesOrder",
        backref=db.backref("receivable", uselist=False, lazy=True),
    )

    def to_dict(self, *, include_order: bool = True) -> dict:
        data = {
            "id": self.id,
            "sales_order_id": self.sales_order_id,
            "amount_cents": self.amount_cents,
            "status": self.status,
            "due_date": to_utc_z(self.due_date),
            "received_at": to_utc_z(self.received_at),
            "created_at": to_utc_z(self.created_at),
        }
        if include_order and self.sales_order is not None:
            so = self.sales_order
            data["sales_order"] = {
                "code": so.code,
                "customer": {"name": so.customer.name} if so.customer else None,
            }
        return data
