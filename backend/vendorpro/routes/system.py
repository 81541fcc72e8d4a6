# backend/vendorpro/routes/system.py
"""
System health and version endpoints.
"""

import sys
import time
from flask import Blueprint, current_app
from sqlalchemy import func

from ..extensions import db
from ..models import Shop, Product, Sale, Commission, InventoryMovement
from ..time_utils import to_utc_z, utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """Connectivity plus a row count per core table."""
    start_time = time.time()
    try:
        details = {
            "shops": db.session.query(Shop).count(),
            "products": db.session.query(Product).count(),
            "sales": db.session.query(Sale).count(),
            "commissions": db.session.query(Commission).count(),
        }
        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": details,
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


def check_stock_ledger_health() -> dict:
    """
    Every product's stock must equal the sum of its movements and be >= 0.
    Mismatches mean something wrote stock outside the inventory ledger.
    """
    start_time = time.time()
    try:
        movement_totals = dict(
            db.session.query(InventoryMovement.product_id, func.sum(InventoryMovement.quantity_delta))
            .group_by(InventoryMovement.product_id)
            .all()
        )
        mismatched = []
        negative = []
        for product_id, stock in db.session.query(Product.id, Product.stock_quantity).all():
            if stock < 0:
                negative.append(product_id)
            if int(movement_totals.get(product_id) or 0) != stock:
                mismatched.append(product_id)

        elapsed_ms = (time.time() - start_time) * 1000
        if negative or mismatched:
            return {
                "status": "degraded",
                "latency_ms": round(elapsed_ms, 2),
                "warning": "Stock does not match the movement ledger",
                "details": {"negative_stock": negative, "mismatched": mismatched},
            }
        return {"status": "healthy", "latency_ms": round(elapsed_ms, 2)}
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Stock ledger health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Stock ledger error"
        }


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: healthy or degraded
    - 503: one or more checks unhealthy
    """
    start_time = time.time()

    database_health = check_database_health()
    stock_health = check_stock_ledger_health()

    all_checks = [database_health, stock_health]
    if any(check["status"] == "unhealthy" for check in all_checks):
        overall_status, http_status = "unhealthy", 503
    elif any(check["status"] == "degraded" for check in all_checks):
        overall_status, http_status = "degraded", 200
    else:
        overall_status, http_status = "healthy", 200

    return {
        "status": overall_status,
        "timestamp": to_utc_z(utcnow()),
        "total_latency_ms": round((time.time() - start_time) * 1000, 2),
        "checks": {
            "database": database_health,
            "stock_ledger": stock_health,
        }
    }, http_status


@system_bp.get("/version")
def version():
    env = "production" if not current_app.debug else "development"
    return {
        "api_version": "1.0.0",
        "environment": env,
        "python_version": sys.version.split()[0],
        "server_time": to_utc_z(utcnow()),
    }
