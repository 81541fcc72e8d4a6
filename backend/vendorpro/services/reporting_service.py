# Overview: Dashboard KPIs derived by scanning products, sales and commissions.

from __future__ import annotations

from datetime import date

from flask import current_app
from sqlalchemy import case, func

from ..extensions import db
from ..models import Product, Sale, Salesman
from ..models.sales import SALE_APPROVED, SALE_PENDING, SALE_REJECTED
from ..time_utils import day_bounds, utcnow
from . import commission_service
from .directory_service import get_salesman, get_shop


def _low_stock_threshold(threshold: int | None) -> int:
    if threshold is not None:
        return threshold
    return int(current_app.config.get("LOW_STOCK_THRESHOLD", 10))


def shop_dashboard(shop_id: int, *, today: date | None = None, low_stock_threshold: int | None = None) -> dict:
    """
    Shop owner KPIs.

    Revenue counts pending and approved sales; rejected sales are excluded
    since their stock went back on the shelf. "Today" is the UTC day.
    """
    get_shop(shop_id)
    threshold = _low_stock_threshold(low_stock_threshold)
    day_start, day_end = day_bounds(today or utcnow().date())

    product_counts = db.session.query(
        func.count(Product.id),
        func.coalesce(func.sum(case(
            ((Product.stock_quantity > 0) & (Product.stock_quantity <= threshold), 1),
            else_=0,
        )), 0),
        func.coalesce(func.sum(case((Product.stock_quantity == 0, 1), else_=0)), 0),
    ).filter(Product.shop_id == shop_id).one()

    status_rows = (
        db.session.query(Sale.status, func.count(Sale.id))
        .filter(Sale.shop_id == shop_id)
        .group_by(Sale.status)
        .all()
    )
    by_status = {status: int(count) for status, count in status_rows}

    revenue_base = db.session.query(func.coalesce(func.sum(Sale.total_amount_cents), 0)).filter(
        Sale.shop_id == shop_id,
        Sale.status != SALE_REJECTED,
    )
    total_revenue = revenue_base.scalar()
    today_revenue = revenue_base.filter(
        Sale.created_at >= day_start,
        Sale.created_at < day_end,
    ).scalar()

    salesmen = (
        db.session.query(func.count(Salesman.id))
        .filter(Salesman.shop_id == shop_id, Salesman.is_active.is_(True))
        .scalar()
    )

    return {
        "shop_id": shop_id,
        "total_products": int(product_counts[0] or 0),
        "low_stock_items": int(product_counts[1] or 0),
        "out_of_stock_items": int(product_counts[2] or 0),
        "low_stock_threshold": threshold,
        "total_sales": sum(by_status.values()),
        "pending_sales": by_status.get(SALE_PENDING, 0),
        "approved_sales": by_status.get(SALE_APPROVED, 0),
        "rejected_sales": by_status.get(SALE_REJECTED, 0),
        "today_revenue_cents": int(today_revenue or 0),
        "total_revenue_cents": int(total_revenue or 0),
        "salesmen": int(salesmen or 0),
    }


def salesman_dashboard(salesman_id: int) -> dict:
    """Salesman KPIs: sale counts plus earned / unpaid / projected commission."""
    get_salesman(salesman_id)

    status_rows = (
        db.session.query(Sale.status, func.count(Sale.id))
        .filter(Sale.salesman_id == salesman_id)
        .group_by(Sale.status)
        .all()
    )
    by_status = {status: int(count) for status, count in status_rows}
    summary = commission_service.summarize(salesman_id=salesman_id)

    return {
        "salesman_id": salesman_id,
        "pending_sales": by_status.get(SALE_PENDING, 0),
        "approved_sales": by_status.get(SALE_APPROVED, 0),
        "rejected_sales": by_status.get(SALE_REJECTED, 0),
        "earned_commission_cents": summary.paid_total_cents,
        "unpaid_commission_cents": summary.unpaid_total_cents,
        "pending_commission_cents": summary.pending_total_cents,
    }
