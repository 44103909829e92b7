# Overview: Flask API routes for purchase orders; parses input and returns JSON responses.

# backend/estoque/routes/purchase_orders.py
"""
Purchase order routes.

POST   /api/purchase-orders                    create (PENDENTE)
GET    /api/purchase-orders?status=...         list
GET    /api/purchase-orders/<id>               detail with receipts and payables
PATCH  /api/purchase-orders/<id>/status        {"status": "..."} transition
POST   /api/purchase-orders/<id>/receive       goods receipt (blind count)
DELETE /api/purchase-orders/<id>               PENDENTE only
"""
from flask import Blueprint, current_app, jsonify, request

from ..errors import EstoqueError, ValidationError
from ..services import purchase_order_service, receive_service
from ..validation import coerce_int

purchase_orders_bp = Blueprint("purchase_orders", __name__, url_prefix="/api/purchase-orders")


@purchase_orders_bp.post("")
def create_purchase_order_route():
    try:
        data = request.get_json(silent=True) or {}
        if data.get("supplier_id") is None:
            raise ValidationError("supplier_id required")

        order = purchase_order_service.create_purchase_order(
            coerce_int(data.get("supplier_id"), "supplier_id"),
            data.get("items"),
            notes=data.get("notes"),
        )
        return jsonify({"purchase_order": order.to_dict()}), 201
    except EstoqueError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create purchase order")
        return jsonify({"error": "Internal server error"}), 500


@purchase_orders_bp.get("")
def list_purchase_orders_route():
    try:
        orders = purchase_order_service.list_purchase_orders(status=request.args.get("status") or None)
        return jsonify({"items": orders, "count": len(orders)}), 200
    except EstoqueError as e:
        return jsonify(e.to_dict()), e.status_code


@purchase_orders_bp.get("/<int:order_id>")
def get_purchase_order_route(order_id: int):
    try:
        return jsonify({"purchase_order": purchase_order_service.get_purchase_order_detail(order_id)}), 200
    except EstoqueError as e:
        return jsonify(e.to_dict()), e.status_code


@purchase_orders_bp.patch("/<int:order_id>/status")
def transition_purchase_order_route(order_id: int):
    try:
        data = request.get_json(silent=True) or {}
        status = data.get("status")
        if not status:
            raise ValidationError("status required")

        order = purchase_order_service.transition_purchase_order(order_id, status)
        return jsonify({"purchase_order": order.to_dict()}), 200
    except EstoqueError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to transition purchase order")
        return jsonify({"error": "Internal server error"}), 500


@purchase_orders_bp.post("/<int:order_id>/receive")
def receive_purchase_order_route(order_id: int):
    """
    Body: {"items": [{"product_id": int, "received_qty": int >= 0}], "notes": str?}

    Divergent counts never block the receipt; they are returned for review.
    """
    try:
        data = request.get_json(silent=True) or {}
        result = receive_service.receive_goods(order_id, data.get("items"), notes=data.get("notes"))
        receipt = result["receipt"]
        return jsonify({
            "goods_receipt": receipt.to_dict(),
            "divergences": [item.to_dict() for item in result["divergences"]],
            "purchase_order": receipt.purchase_order.to_dict(),
        }), 201
    except EstoqueError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to receive purchase order")
        return jsonify({"error": "Internal server error"}), 500


@purchase_orders_bp.delete("/<int:order_id>")
def delete_purchase_order_route(order_id: int):
    try:
        purchase_order_service.delete_purchase_order(order_id)
        return jsonify({"success": True}), 200
    except EstoqueError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete purchase order")
        return jsonify({"error": "Internal server error"}), 500
