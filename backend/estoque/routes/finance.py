# Overview: Flask API routes for accounts payable and accounts receivable.

from flask import Blueprint, current_app, jsonify, request

from ..errors import EstoqueError
from ..services import finance_service

payables_bp = Blueprint("accounts_payable", __name__, url_prefix="/api/accounts-payable")
receivables_bp = Blueprint("accounts_receivable", __name__, url_prefix="/api/accounts-receivable")


@payables_bp.get("")
def list_payables_route():
    try:
        payables = finance_service.list_payables(status=request.args.get("status") or None)
        total = sum(p.amount_cents for p in payables)
        return jsonify({
            "items": [p.to_dict() for p in payables],
            "count": len(payables),
            "total_cents": total,
        }), 200
    except EstoqueError as e:
        return jsonify(e.to_dict()), e.status_code


@payables_bp.post("/<int:payable_id>/pay")
def pay_payable_route(payable_id: int):
    try:
        payable = finance_service.pay_payable(payable_id)
        return jsonify({"payable": payable.to_dict()}), 200
    except EstoqueError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to pay payable")
        return jsonify({"error": "Internal server error"}), 500


@receivables_bp.get("")
def list_receivables_route():
    try:
        receivables = finance_service.list_receivables(status=request.args.get("status") or None)
        total = sum(r.amount_cents for r in receivables)
        return jsonify({
            "items": [r.to_dict() for r in receivables],
            "count": len(receivables),
            "total_cents": total,
        }), 200
    except EstoqueError as e:
        return jsonify(e.to_dict()), e.status_code


@receivables_bp.post("/<int:receivable_id>/receive")
def receive_receivable_route(receivable_id: int):
    try:
        receivable = finance_service.receive_receivable(receivable_id)
        return jsonify({"receivable": receivable.to_dict()}), 200
    except EstoqueError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to receive receivable")
        return jsonify({"error": "Internal server error"}), 500
