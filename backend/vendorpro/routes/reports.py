# Overview: Flask API routes for dashboard KPIs.

from flask import Blueprint, jsonify

from ..errors import SalesEngineError
from ..services import reporting_service


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/shops/<int:shop_id>/dashboard")
def shop_dashboard_route(shop_id: int):
    try:
        return jsonify({"dashboard": reporting_service.shop_dashboard(shop_id)}), 200
    except SalesEngineError as e:
        return jsonify(e.to_dict()), e.status_code


@reports_bp.get("/salesmen/<int:salesman_id>/dashboard")
def salesman_dashboard_route(salesman_id: int):
    try:
        return jsonify({"dashboard": reporting_service.salesman_dashboard(salesman_id)}), 200
    except SalesEngineError as e:
        return jsonify(e.to_dict()), e.status_code
