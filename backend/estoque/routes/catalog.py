# Overview: Flask API routes for catalog maintenance (products, categories, suppliers, customers).

# backend/estoque/routes/catalog.py
"""
Catalog routes.

Payloads are validated against the model columns through
ModelValidationPolicy; business rules (unique tax ids, blocked deletes,
initial stock movement) live in catalog_service.
"""
from flask import Blueprint, current_app, jsonify, request

from ..errors import EstoqueError
from ..models import Category, Customer, Product, Supplier
from ..services import catalog_service
from ..services.stock_service import get_product
from ..validation import ModelValidationPolicy, validate_payload

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={"sku", "name", "description", "price_cents", "quantity", "min_stock", "category_id"},
    required_on_create={"sku", "name", "price_cents", "category_id"},
)
# Stock only moves through /api/movements, receipts and invoicing
PRODUCT_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields={"sku", "name", "description", "price_cents", "min_stock", "category_id"},
)
CATEGORY_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description"},
    required_on_create={"name"},
)
SUPPLIER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "cnpj", "email", "phone"},
    required_on_create={"name"},
)
CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "cpf_cnpj", "email", "phone", "address"},
    required_on_create={"name"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")
categories_bp = Blueprint("categories", __name__, url_prefix="/api/categories")
suppliers_bp = Blueprint("suppliers", __name__, url_prefix="/api/suppliers")
customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


# =============================================================================
# Products
# =============================================================================

@products_bp.get("")
def list_products_route():
    """
    Query params:
    - search: matches name, sku or description
    - category_id: int
    """
    search = request.args.get("search") or None
    category_id = request.args.get("category_id", type=int)
    products = catalog_service.list_products(search=search, category_id=category_id)
    return jsonify({"items": [p.to_dict() for p in products], "count": len(products)}), 200


@products_bp.get("/<int:product_id>")
def get_product_route(product_id: int):
    try:
        return jsonify({"product": get_product(product_id).to_dict()}), 200
    except EstoqueError as e:
        return jsonify(e.to_dict()), e.status_code


@products_bp.post("")
def create_product_route():
    try:
        patch = validate_payload(
            model=Product,
            payload=request.get_json(silent=True),
            policy=PRODUCT_POLICY,
            partial=False,
        )
        product = catalog_service.create_product(patch=patch)
        return jsonify({"product": product.to_dict()}), 201
    except EstoqueError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.put("/<int:product_id>")
def update_product_route(product_id: int):
    try:
        patch = validate_payload(
            model=Product,
            payload=request.get_json(silent=True),
            policy=PRODUCT_UPDATE_POLICY,
            partial=True,
        )
        product = catalog_service.update_product(product_id, patch)
        return jsonify({"product": product.to_dict()}), 200
    except EstoqueError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.delete("/<int:product_id>")
def delete_product_route(product_id: int):
    try:
        catalog_service.delete_product(product_id)
        return jsonify({"success": True}), 200
    except EstoqueError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete product")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# Categories
# =============================================================================

@categories_bp.get("")
def list_categories_route():
    return jsonify({"items": catalog_service.list_categories()}), 200


@categories_bp.post("")
def create_category_route():
    try:
        patch = validate_payload(
            model=Category,
            payload=request.get_json(silent=True),
            policy=CATEGORY_POLICY,
            partial=False,
        )
        category = catalog_service.create_category(name=patch["name"], description=patch.get("description"))
        return jsonify({"category": category.to_dict()}), 201
    except EstoqueError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create category")
        return jsonify({"error": "Internal server error"}), 500


@categories_bp.put("/<int:category_id>")
def update_category_route(category_id: int):
    try:
        patch = validate_payload(
            model=Category,
            payload=request.get_json(silent=True),
            policy=CATEGORY_POLICY,
            partial=True,
        )
        category = catalog_service.update_category(category_id, patch)
        return jsonify({"category": category.to_dict()}), 200
    except EstoqueError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update category")
        return jsonify({"error": "Internal server error"}), 500


@categories_bp.delete("/<int:category_id>")
def delete_category_route(category_id: int):
    try:
        catalog_service.delete_category(category_id)
        return jsonify({"success": True}), 200
    except EstoqueError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete category")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# Suppliers
# =============================================================================

@suppliers_bp.get("")
def list_suppliers_route():
    suppliers = catalog_service.list_suppliers()
    return jsonify({"items": [s.to_dict() for s in suppliers]}), 200


@suppliers_bp.post("")
def create_supplier_route():
    try:
        patch = validate_payload(
            model=Supplier,
            payload=request.get_json(silent=True),
            policy=SUPPLIER_POLICY,
            partial=False,
        )
        supplier = catalog_service.create_supplier(patch=patch)
        return jsonify({"supplier": supplier.to_dict()}), 201
    except EstoqueError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create supplier")
        return jsonify({"error": "Internal server error"}), 500


@suppliers_bp.put("/<int:supplier_id>")
def update_supplier_route(supplier_id: int):
    try:
        patch = validate_payload(
            model=Supplier,
            payload=request.get_json(silent=True),
            policy=SUPPLIER_POLICY,
            partial=True,
        )
        supplier = catalog_service.update_supplier(supplier_id, patch)
        return jsonify({"supplier": supplier.to_dict()}), 200
    except EstoqueError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update supplier")
        return jsonify({"error": "Internal server error"}), 500


@suppliers_bp.delete("/<int:supplier_id>")
def delete_supplier_route(supplier_id: int):
    try:
        catalog_service.delete_supplier(supplier_id)
        return jsonify({"success": True}), 200
    except EstoqueError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete supplier")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# Customers
# =============================================================================

@customers_bp.get("")
def list_customers_route():
    customers = catalog_service.list_customers()
    return jsonify({"items": [c.to_dict() for c in customers]}), 200


@customers_bp.post("")
def create_customer_route():
    try:
        patch = validate_payload(
            model=Customer,
            payload=request.get_json(silent=True),
            policy=CUSTOMER_POLICY,
            partial=False,
        )
        customer = catalog_service.create_customer(patch=patch)
        return jsonify({"customer": customer.to_dict()}), 201
    except EstoqueError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create customer")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.put("/<int:customer_id>")
def update_customer_route(customer_id: int):
    try:
        patch = validate_payload(
            model=Customer,
            payload=request.get_json(silent=True),
            policy=CUSTOMER_POLICY,
            partial=True,
        )
        customer = catalog_service.update_customer(customer_id, patch)
        return jsonify({"customer": customer.to_dict()}), 200
    except EstoqueError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update customer")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.delete("/<int:customer_id>")
def delete_customer_route(customer_id: int):
    try:
        catalog_service.delete_customer(customer_id)
        return jsonify({"success": True}), 200
    except EstoqueError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete customer")
        return jsonify({"error": "Internal server error"}), 500
