# Overview: Flask API routes for the sale lifecycle; parses input and returns JSON responses.

# backend/vendorpro/routes/sales.py
"""Sale lifecycle API: create, list, read, approve, reject."""

from flask import Blueprint, request, jsonify, current_app

from ..errors import SalesEngineError
from ..models.sales import OwnerDirect, SalesmanSale
from ..services import sales_service
from ..services.concurrency import run_with_retry
from ..validation import ValidationError, parse_sale_items, require_positive_int


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


def _with_transport_retry(func):
    return run_with_retry(func, attempts=current_app.config.get("TRANSPORT_RETRY_ATTEMPTS", 3))


@sales_bp.post("")
def create_sale_route():
    """
    Record a pending sale and reserve its stock.

    Body:
    - shop_id: int (required)
    - salesman_id: int (optional; omitted/null means an owner-direct sale)
    - items: [{product_id, quantity, sold_at_cents}, ...] (required, non-empty)
    """
    try:
        data = request.get_json(silent=True) or {}
        shop_id = require_positive_int(data.get("shop_id"), "shop_id")
        salesman_id = data.get("salesman_id")
        origin = (
            OwnerDirect() if salesman_id is None
            else SalesmanSale(require_positive_int(salesman_id, "salesman_id"))
        )
        items = parse_sale_items(data.get("items"))

        manager = sales_service.get_manager()
        sale = _with_transport_retry(lambda: manager.create(shop_id, origin, items))
        return jsonify({"sale": sale.to_dict()}), 201

    except SalesEngineError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("")
def list_sales_route():
    """
    List sales, newest first.

    Query params (all optional, combined with AND):
    - shop_id: int
    - salesman_id: int
    - status: pending | approved | rejected
    """
    try:
        sales = sales_service.list_sales(
            shop_id=request.args.get("shop_id", type=int),
            salesman_id=request.args.get("salesman_id", type=int),
            status=request.args.get("status") or None,
        )
        return jsonify({
            "items": [s.to_dict() for s in sales],
            "count": len(sales),
        }), 200
    except SalesEngineError as e:
        return jsonify(e.to_dict()), e.status_code


@sales_bp.get("/<int:sale_id>")
def get_sale_route(sale_id: int):
    try:
        sale = sales_service.get_sale(sale_id)
        payload = {"sale": sale.to_dict()}
        if sale.commission is not None:
            payload["commission"] = sale.commission.to_dict()
        return jsonify(payload), 200
    except SalesEngineError as e:
        return jsonify(e.to_dict()), e.status_code


@sales_bp.post("/<int:sale_id>/approve")
def approve_sale_route(sale_id: int):
    """Approve a pending sale; records the salesman's commission."""
    try:
        manager = sales_service.get_manager()
        sale = _with_transport_retry(lambda: manager.approve(sale_id))

        payload = {"sale": sale.to_dict()}
        if sale.commission is not None:
            payload["commission"] = sale.commission.to_dict()
        return jsonify(payload), 200

    except SalesEngineError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to approve sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.post("/<int:sale_id>/reject")
def reject_sale_route(sale_id: int):
    """
    Reject a pending sale and put its stock back.

    Body (optional):
    - reason: str (defaults to the configured placeholder)
    """
    try:
        data = request.get_json(silent=True) or {}
        reason = data.get("reason")
        if reason is not None and not isinstance(reason, str):
            raise ValidationError("reason must be a string")

        manager = sales_service.get_manager()
        sale = _with_transport_retry(lambda: manager.reject(sale_id, reason))
        return jsonify({"sale": sale.to_dict()}), 200

    except SalesEngineError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to reject sale")
        return jsonify({"error": "Internal server error"}), 500
