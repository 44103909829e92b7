# Overview: Flask API routes for sales orders; parses input and returns JSON responses.

# backend/estoque/routes/sales_orders.py
"""Sales order routes. PATCH .../status with FATURADA invoices the order."""

from flask import Blueprint, current_app, jsonify, request

from ..errors import EstoqueError, ValidationError
from ..services import sales_service
from ..validation import coerce_int

sales_orders_bp = Blueprint("sales_orders", __name__, url_prefix="/api/sales-orders")


@sales_orders_bp.post("")
def create_sales_order_route():
    try:
        data = request.get_json(silent=True) or {}
        if data.get("customer_id") is None:
            raise ValidationError("customer_id required")

        order = sales_service.create_sales_order(
            coerce_int(data.get("customer_id"), "customer_id"),
            data.get("items"),
            notes=data.get("notes"),
        )
        return jsonify({"sales_order": order.to_dict()}), 201
    except EstoqueError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create sales order")
        return jsonify({"error": "Internal server error"}), 500


@sales_orders_bp.get("")
def list_sales_orders_route():
    try:
        orders = sales_service.list_sales_orders(status=request.args.get("status") or None)
        return jsonify({"items": [o.to_dict() for o in orders], "count": len(orders)}), 200
    except EstoqueError as e:
        return jsonify(e.to_dict()), e.status_code


@sales_orders_bp.get("/<int:order_id>")
def get_sales_order_route(order_id: int):
    try:
        return jsonify({"sales_order": sales_service.get_sales_order(order_id).to_dict()}), 200
    except EstoqueError as e:
        return jsonify(e.to_dict()), e.status_code


@sales_orders_bp.patch("/<int:order_id>/status")
def transition_sales_order_route(order_id: int):
    try:
        data = request.get_json(silent=True) or {}
        status = data.get("status")
        if not status:
            raise ValidationError("status required")

        order = sales_service.transition_sales_order(order_id, status)
        return jsonify({"sales_order": order.to_dict()}), 200
    except EstoqueError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to transition sales order")
        return jsonify({"error": "Internal server error"}), 500


@sales_orders_bp.delete("/<int:order_id>")
def delete_sales_order_route(order_id: int):
    try:
        sales_service.delete_sales_order(order_id)
        return jsonify({"success": True}), 200
    except EstoqueError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete sales order")
        return jsonify({"error": "Internal server error"}), 500
