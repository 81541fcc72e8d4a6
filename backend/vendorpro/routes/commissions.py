# Overview: Flask API routes for commission rules and the commission ledger.

# backend/vendorpro/routes/commissions.py
"""
Commission API.

Rules:
- GET   /api/commissions/rules                    list (?active=true)
- POST  /api/commissions/rules                    create
- GET   /api/commissions/rules/<id>               read
- PATCH /api/commissions/rules/<id>               edit value/description/is_active
- POST  /api/commissions/rules/assign             {salesman_id, commission_rule_id}
- GET   /api/commissions/rules/salesman/<id>      active rule for a salesman

Ledger:
- GET   /api/commissions                          list (?salesman_id, ?shop_id, ?is_paid)
- GET   /api/commissions/<id>                     read
- POST  /api/commissions/<id>/mark-paid           idempotent: 409 on the second call
- GET   /api/commissions/summary                  ?salesman_id= or ?shop_id=
- GET   /api/commissions/date-range               ?start=&end=[&salesman_id][&shop_id]
"""

from flask import Blueprint, request, jsonify, current_app

from ..errors import SalesEngineError
from ..services import commission_rule_service, commission_service
from ..services.concurrency import run_with_retry
from ..time_utils import parse_iso_datetime
from ..validation import ValidationError, require_positive_int


commissions_bp = Blueprint("commissions", __name__, url_prefix="/api/commissions")


def _optional_bool_arg(name: str) -> bool | None:
    raw = request.args.get(name)
    if raw is None or raw == "":
        return None
    lowered = raw.strip().lower()
    if lowered in ("true", "1", "yes"):
        return True
    if lowered in ("false", "0", "no"):
        return False
    raise ValidationError(f"{name} must be true or false")


def _date_arg(name: str):
    try:
        return parse_iso_datetime(request.args.get(name))
    except ValueError:
        raise ValidationError(f"{name} must be an ISO-8601 date or datetime")


# =============================================================================
# RULES
# =============================================================================


@commissions_bp.get("/rules")
def list_rules_route():
    try:
        rules = commission_rule_service.list_rules(active_only=bool(_optional_bool_arg("active")))
        return jsonify({"items": [r.to_dict() for r in rules], "count": len(rules)}), 200
    except SalesEngineError as e:
        return jsonify(e.to_dict()), e.status_code


@commissions_bp.post("/rules")
def create_rule_route():
    """
    Body:
    - type: PERCENTAGE_OF_SALES | FIXED_AMOUNT | PERCENTAGE_ON_DIFFERENCE
    - value: number
    - description: str (optional)
    - is_active: bool (optional, default true)
    """
    try:
        data = request.get_json(silent=True) or {}
        if "type" not in data or "value" not in data:
            raise ValidationError("type and value required")
        is_active = data.get("is_active", True)
        if not isinstance(is_active, bool):
            raise ValidationError("is_active must be true or false")

        rule = commission_rule_service.create_rule(
            data["type"],
            data["value"],
            description=data.get("description"),
            is_active=is_active,
        )
        return jsonify({"rule": rule.to_dict()}), 201

    except SalesEngineError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create commission rule")
        return jsonify({"error": "Internal server error"}), 500


@commissions_bp.get("/rules/<int:rule_id>")
def get_rule_route(rule_id: int):
    try:
        return jsonify({"rule": commission_rule_service.get_rule(rule_id).to_dict()}), 200
    except SalesEngineError as e:
        return jsonify(e.to_dict()), e.status_code


@commissions_bp.patch("/rules/<int:rule_id>")
def update_rule_route(rule_id: int):
    try:
        data = request.get_json(silent=True) or {}
        unknown = set(data) - {"value", "description", "is_active"}
        if unknown:
            raise ValidationError(f"Field not allowed: {', '.join(sorted(unknown))}")
        if "is_active" in data and not isinstance(data["is_active"], bool):
            raise ValidationError("is_active must be true or false")

        rule = commission_rule_service.update_rule(
            rule_id,
            value=data.get("value"),
            description=data.get("description"),
            is_active=data.get("is_active"),
        )
        return jsonify({"rule": rule.to_dict()}), 200

    except SalesEngineError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update commission rule")
        return jsonify({"error": "Internal server error"}), 500


@commissions_bp.post("/rules/assign")
def assign_rule_route():
    try:
        data = request.get_json(silent=True) or {}
        salesman_id = require_positive_int(data.get("salesman_id"), "salesman_id")
        rule_id = require_positive_int(data.get("commission_rule_id"), "commission_rule_id")

        assignment = run_with_retry(
            lambda: commission_rule_service.assign_rule(salesman_id, rule_id),
            attempts=current_app.config.get("TRANSPORT_RETRY_ATTEMPTS", 3),
        )
        return jsonify({"assignment": assignment.to_dict()}), 201

    except SalesEngineError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to assign commission rule")
        return jsonify({"error": "Internal server error"}), 500


@commissions_bp.get("/rules/salesman/<int:salesman_id>")
def active_rule_route(salesman_id: int):
    try:
        rule = commission_rule_service.require_active_rule_for(salesman_id)
        return jsonify({"rule": rule.to_dict()}), 200
    except SalesEngineError as e:
        return jsonify(e.to_dict()), e.status_code


# =============================================================================
# LEDGER
# =============================================================================


@commissions_bp.get("")
def list_commissions_route():
    try:
        commissions = commission_service.list_commissions(
            salesman_id=request.args.get("salesman_id", type=int),
            shop_id=request.args.get("shop_id", type=int),
            is_paid=_optional_bool_arg("is_paid"),
        )
        return jsonify({"items": [c.to_dict() for c in commissions], "count": len(commissions)}), 200
    except SalesEngineError as e:
        return jsonify(e.to_dict()), e.status_code


@commissions_bp.get("/<int:commission_id>")
def get_commission_route(commission_id: int):
    try:
        return jsonify({"commission": commission_service.get_commission(commission_id).to_dict()}), 200
    except SalesEngineError as e:
        return jsonify(e.to_dict()), e.status_code


@commissions_bp.post("/<int:commission_id>/mark-paid")
def mark_paid_route(commission_id: int):
    try:
        commission = run_with_retry(
            lambda: commission_service.mark_paid(commission_id),
            attempts=current_app.config.get("TRANSPORT_RETRY_ATTEMPTS", 3),
        )
        return jsonify({"commission": commission.to_dict()}), 200

    except SalesEngineError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to mark commission paid")
        return jsonify({"error": "Internal server error"}), 500


@commissions_bp.get("/summary")
def summary_route():
    try:
        summary = commission_service.summarize(
            salesman_id=request.args.get("salesman_id", type=int),
            shop_id=request.args.get("shop_id", type=int),
        )
        return jsonify({"summary": summary.to_dict()}), 200
    except SalesEngineError as e:
        return jsonify(e.to_dict()), e.status_code


@commissions_bp.get("/date-range")
def date_range_route():
    try:
        result = commission_service.commissions_by_date_range(
            _date_arg("start"),
            _date_arg("end"),
            salesman_id=request.args.get("salesman_id", type=int),
            shop_id=request.args.get("shop_id", type=int),
        )
        return jsonify({
            "total_commission_cents": result["total_commission_cents"],
            "commissions": [c.to_dict() for c in result["commissions"]],
        }), 200
    except SalesEngineError as e:
        return jsonify(e.to_dict()), e.status_code
