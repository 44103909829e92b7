# Overview: Flask API routes for the stock ledger; manual IN/OUT adjustments and movement history.

from flask import Blueprint, current_app, jsonify, request

from ..errors import EstoqueError, ValidationError
from ..services import stock_service
from ..time_utils import parse_iso_datetime

movements_bp = Blueprint("movements", __name__, url_prefix="/api/movements")


@movements_bp.get("")
def list_movements_route():
    """
    Query params:
    - product_id: int (optional)
    - since: ISO-8601 datetime (optional)
    - limit: int (optional, capped at MAX_LIST_LIMIT)
    """
    try:
        product_id = request.args.get("product_id", type=int)
        limit = request.args.get("limit", type=int)
        if limit is not None:
            if limit <= 0:
                raise ValidationError("limit must be positive")
            limit = min(limit, current_app.config.get("MAX_LIST_LIMIT", 500))
        try:
            since = parse_iso_datetime(request.args.get("since"))
        except ValueError:
            raise ValidationError("since must be an ISO-8601 datetime")

        movements = stock_service.list_stock_movements(product_id=product_id, since=since, limit=limit)
        return jsonify({"items": [m.to_dict() for m in movements], "count": len(movements)}), 200
    except EstoqueError as e:
        return jsonify(e.to_dict()), e.status_code


@movements_bp.post("")
def create_movement_route():
    """
    Manual stock adjustment.

    Body: {"product_id": int, "type": "IN"|"OUT", "quantity": int > 0, "reason": str?}
    """
    try:
        data = request.get_json(silent=True) or {}
        if data.get("product_id") is None:
            raise ValidationError("product_id required")

        movement = stock_service.record_stock_movement(
            product_id=data.get("product_id"),
            movement_type=data.get("type"),
            quantity=data.get("quantity"),
            reason=data.get("reason"),
        )
        return jsonify({
            "movement": movement.to_dict(),
            "product_quantity": movement.product.quantity,
        }), 201
    except EstoqueError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to record stock movement")
        return jsonify({"error": "Internal server error"}), 500


@movements_bp.get("/low-stock")
def low_stock_route():
    products = stock_service.list_low_stock()
    return jsonify({"items": [p.to_dict() for p in products], "count": len(products)}), 200


@movements_bp.get("/reconcile")
def reconcile_route():
    drift = stock_service.reconcile_stock()
    return jsonify({"consistent": not drift, "drift": drift}), 200
