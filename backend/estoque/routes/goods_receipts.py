# Overview: Flask API routes for goods receipts; receiving and receipt history.

from flask import Blueprint, current_app, jsonify, request

from ..errors import EstoqueError, ValidationError
from ..services import receive_service
from ..validation import coerce_int

goods_receipts_bp = Blueprint("goods_receipts", __name__, url_prefix="/api/goods-receipts")


@goods_receipts_bp.get("")
def list_goods_receipts_route():
    purchase_order_id = request.args.get("purchase_order_id", type=int)
    receipts = receive_service.list_goods_receipts(purchase_order_id=purchase_order_id)
    items = []
    for receipt in receipts:
        data = receipt.to_dict()
        data["divergences"] = [item.to_dict() for item in receipt.divergences]
        items.append(data)
    return jsonify({"items": items, "count": len(items)}), 200


@goods_receipts_bp.get("/<int:receipt_id>")
def get_goods_receipt_route(receipt_id: int):
    try:
        receipt = receive_service.get_goods_receipt(receipt_id)
        return jsonify({"goods_receipt": receipt.to_dict()}), 200
    except EstoqueError as e:
        return jsonify(e.to_dict()), e.status_code


@goods_receipts_bp.post("")
def create_goods_receipt_route():
    """Body: {"purchase_order_id": int, "items": [...], "notes": str?}"""
    try:
        data = request.get_json(silent=True) or {}
        if data.get("purchase_order_id") is None:
            raise ValidationError("purchase_order_id required")

        result = receive_service.receive_goods(
            coerce_int(data.get("purchase_order_id"), "purchase_order_id"),
            data.get("items"),
            notes=data.get("notes"),
        )
        return jsonify({
            "goods_receipt": result["receipt"].to_dict(),
            "divergences": [item.to_dict() for item in result["divergences"]],
        }), 201
    except EstoqueError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create goods receipt")
        return jsonify({"error": "Internal server error"}), 500
