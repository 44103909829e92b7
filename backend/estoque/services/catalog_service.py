# backend/estoque/services/catalog_service.py
"""
Catalog Service: categories, products, suppliers and customers.

Plain maintenance with a few rules that protect order history:
- SKU, category name, supplier CNPJ and customer CPF/CNPJ are unique (ConflictError)
- Suppliers/customers/products are soft-deleted (deleted_at) so orders keep their references
- A supplier with purchase orders, a customer with sales orders, or a category
  with products cannot be deleted
- Product.quantity is never patched directly; an initial quantity on create is
  recorded as an IN movement so the ledger invariant holds from day one
"""
from __future__ import annotations

import logging

from flask import current_app

from ..errors import ConflictError, InvalidStateError, NotFoundError
from ..extensions import db
from ..models import Category, Customer, Product, PurchaseOrder, SalesOrder, Supplier
from ..models.inventory import MOVEMENT_IN
from ..validation import enforce_rules_product
from .concurrency import run_atomic
from .stock_service import apply_movement, get_product
from estoque.time_utils import utcnow

logger = logging.getLogger("estoque")

PRODUCT_MUTABLE_FIELDS = {"sku", "name", "description", "price_cents", "min_stock", "category_id"}
SUPPLIER_MUTABLE_FIELDS = {"name", "cnpj", "email", "phone"}
CUSTOMER_MUTABLE_FIELDS = {"name", "cpf_cnpj", "email", "phone", "address"}

INITIAL_STOCK_REASON = "Estoque inicial"


def _apply_patch(obj, patch: dict, mutable_fields: set[str]) -> None:
    for k, v in patch.items():
        if k not in mutable_fields:
            continue
        setattr(obj, k, v)


# =============================================================================
# Categories
# =============================================================================

def get_category(category_id: int) -> Category:
    category = db.session.query(Category).filter_by(id=category_id).first()
    if category is None:
        raise NotFoundError(f"Category {category_id} not found")
    return category


def list_categories() -> list[dict]:
    """Categories by name, each with its active product count."""
    rows = []
    for category in db.session.query(Category).order_by(Category.name.asc()).all():
        data = category.to_dict()
        data["product_count"] = (
            db.session.query(Product)
            .filter(Product.category_id == category.id, Product.deleted_at.is_(None))
            .count()
        )
        rows.append(data)
    return rows


def create_category(*, name: str, description: str | None = None) -> Category:
    def _op():
        if db.session.query(Category).filter_by(name=name).first():
            raise ConflictError(f"Category {name!r} already exists")
        category = Category(name=name, description=description)
        db.session.add(category)
        db.session.flush()
        return category

    return run_atomic(_op)


def update_category(category_id: int, patch: dict) -> Category:
    def _op():
        category = get_category(category_id)
        new_name = patch.get("name")
        if new_name and new_name != category.name:
            if db.session.query(Category).filter_by(name=new_name).first():
                raise ConflictError(f"Category {new_name!r} already exists")
        _apply_patch(category, patch, {"name", "description"})
        return category

    return run_atomic(_op)


def delete_category(category_id: int) -> None:
    def _op():
        category = get_category(category_id)
        count = db.session.query(Product).filter_by(category_id=category.id).count()
        if count:
            raise InvalidStateError(
                f"Category has {count} linked product(s) and cannot be deleted",
                details={"product_count": count},
            )
        db.session.delete(category)

    run_atomic(_op)


# =============================================================================
# Products
# =============================================================================

def list_products(*, search: str | None = None, category_id: int | None = None) -> list[Product]:
    q = db.session.query(Product).filter(Product.deleted_at.is_(None))
    if search:
        like = f"%{search}%"
        q = q.filter(
            Product.name.ilike(like)
            | Product.sku.ilike(like)
            | Product.description.ilike(like)
        )
    if category_id is not None:
        q = q.filter(Product.category_id == category_id)
    return q.order_by(Product.name.asc(), Product.id.asc()).all()


def create_product(*, patch: dict) -> Product:
    """
    Create a product from a validated patch dict.

    Raises:
        ConflictError: SKU already exists
        NotFoundError: category does not exist
    """
    enforce_rules_product(patch)
    initial_quantity = patch.get("quantity") or 0

    def _op():
        get_category(patch["category_id"])
        if db.session.query(Product).filter_by(sku=patch["sku"]).first():
            raise ConflictError(f"SKU {patch['sku']!r} already exists", details={"sku": patch["sku"]})

        product = Product(quantity=0)
        _apply_patch(product, patch, PRODUCT_MUTABLE_FIELDS)
        if product.min_stock is None:
            product.min_stock = current_app.config.get("DEFAULT_MIN_STOCK", 5)
        db.session.add(product)
        db.session.flush()

        if initial_quantity > 0:
            apply_movement(
                product_id=product.id,
                movement_type=MOVEMENT_IN,
                quantity=initial_quantity,
                reason=INITIAL_STOCK_REASON,
            )

        logger.info("product.created", extra={"product_id": product.id, "sku": product.sku})
        return product

    return run_atomic(_op)


def update_product(product_id: int, patch: dict) -> Product:
    enforce_rules_product(patch)

    def _op():
        product = get_product(product_id)
        if "sku" in patch and patch["sku"] != product.sku:
            if db.session.query(Product).filter_by(sku=patch["sku"]).first():
                raise ConflictError(f"SKU {patch['sku']!r} already exists", details={"sku": patch["sku"]})
        if "category_id" in patch:
            get_category(patch["category_id"])
        _apply_patch(product, patch, PRODUCT_MUTABLE_FIELDS)
        return product

    return run_atomic(_op)


def delete_product(product_id: int) -> None:
    def _op():
        product = get_product(product_id)
        product.deleted_at = utcnow()

    run_atomic(_op)


# =============================================================================
# Suppliers
# =============================================================================

def get_supplier(supplier_id: int) -> Supplier:
    supplier = db.session.query(Supplier).filter_by(id=supplier_id).first()
    if supplier is None or supplier.deleted_at is not None:
        raise NotFoundError(f"Supplier {supplier_id} not found", details={"supplier_id": supplier_id})
    return supplier


def list_suppliers() -> list[Supplier]:
    return (
        db.session.query(Supplier)
        .filter(Supplier.deleted_at.is_(None))
        .order_by(Supplier.name.asc())
        .all()
    )


def _check_unique_cnpj(cnpj: str | None, *, exclude_id: int | None = None) -> None:
    if not cnpj:
        return
    q = db.session.query(Supplier).filter(Supplier.cnpj == cnpj)
    if exclude_id is not None:
        q = q.filter(Supplier.id != exclude_id)
    if q.first():
        raise ConflictError(f"Supplier with CNPJ {cnpj} already exists", details={"cnpj": cnpj})


def create_supplier(*, patch: dict) -> Supplier:
    def _op():
        _check_unique_cnpj(patch.get("cnpj"))
        supplier = Supplier()
        _apply_patch(supplier, patch, SUPPLIER_MUTABLE_FIELDS)
        db.session.add(supplier)
        db.session.flush()
        return supplier

    return run_atomic(_op)


def update_supplier(supplier_id: int, patch: dict) -> Supplier:
    def _op():
        supplier = get_supplier(supplier_id)
        _check_unique_cnpj(patch.get("cnpj"), exclude_id=supplier.id)
        _apply_patch(supplier, patch, SUPPLIER_MUTABLE_FIELDS)
        return supplier

    return run_atomic(_op)


def delete_supplier(supplier_id: int) -> None:
    def _op():
        supplier = get_supplier(supplier_id)
        orders = db.session.query(PurchaseOrder).filter_by(supplier_id=supplier.id).count()
        if orders:
            raise InvalidStateError(
                "Supplier has purchase orders and cannot be deleted",
                details={"purchase_order_count": orders},
            )
        supplier.deleted_at = utcnow()

    run_atomic(_op)


# =============================================================================
# Customers
# =============================================================================

def get_customer(customer_id: int) -> Customer:
    customer = db.session.query(Customer).filter_by(id=customer_id).first()
    if customer is None or customer.deleted_at is not None:
        raise NotFoundError(f"Customer {customer_id} not found", details={"customer_id": customer_id})
    return customer


def list_customers() -> list[Customer]:
    return (
        db.session.query(Customer)
        .filter(Customer.deleted_at.is_(None))
        .order_by(Customer.name.asc())
        .all()
    )


def _check_unique_cpf_cnpj(cpf_cnpj: str | None, *, exclude_id: int | None = None) -> None:
    if not cpf_cnpj:
        return
    q = db.session.query(Customer).filter(Customer.cpf_cnpj == cpf_cnpj)
    if exclude_id is not None:
        q = q.filter(Customer.id != exclude_id)
    if q.first():
        raise ConflictError(f"Customer with CPF/CNPJ {cpf_cnpj} already exists", details={"cpf_cnpj": cpf_cnpj})


def create_customer(*, patch: dict) -> Customer:
    def _op():
        _check_unique_cpf_cnpj(patch.get("cpf_cnpj"))
        customer = Customer()
        _apply_patch(customer, patch, CUSTOMER_MUTABLE_FIELDS)
        db.session.add(customer)
        db.session.flush()
        return customer

    return run_atomic(_op)


def update_customer(customer_id: int, patch: dict) -> Customer:
    def _op():
        customer = get_customer(customer_id)
        _check_unique_cpf_cnpj(patch.get("cpf_cnpj"), exclude_id=customer.id)
        _apply_patch(customer, patch, CUSTOMER_MUTABLE_FIELDS)
        return customer

    return run_atomic(_op)


def delete_customer(customer_id: int) -> None:
    def _op():
        customer = get_customer(customer_id)
        orders = db.session.query(SalesOrder).filter_by(customer_id=customer.id).count()
        if orders:
            raise InvalidStateError(
                "Customer has sales orders and cannot be deleted",
                details={"sales_order_count": orders},
            )
        customer.deleted_at = utcnow()

    run_atomic(_op)
