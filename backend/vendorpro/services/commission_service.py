# Overview: Commission ledger; append-only entries, mark-paid and summaries.

from __future__ import annotations

from dataclasses import dataclass, asdict
from datetime import datetime

from flask import current_app
from sqlalchemy import case, func

from ..extensions import db
from ..errors import AlreadyPaidError, AlreadyResolvedError, InvalidInputError, NotFoundError
from ..models import Commission, Sale
from ..models.sales import SALE_APPROVED, SALE_PENDING
from ..time_utils import utcnow
from . import commission_rule_service
from .commission_calculator import commission_for_sale
from .concurrency import begin_write_transaction, lock_for_update
"""
Commission Ledger invariants (authoritative)

- One entry per approved salesman sale (unique sale_id); written only by the
  sale lifecycle at approval, inside the approval transaction.
- amount_cents and commission_rule_id are frozen at write time.
- is_paid goes false -> true once, through mark_paid. A second call raises
  AlreadyPaidError and changes nothing.
- "Pending" commission is never stored. summarize() projects it from the
  pending sales and the salesmen's *current* active rules on every call, so
  it can differ from what approval eventually records.
"""


@dataclass(frozen=True)
class CommissionSummary:
    total_cents: int
    approved_total_cents: int
    pending_total_cents: int
    paid_total_cents: int
    unpaid_total_cents: int
    approved_count: int
    pending_count: int

    def to_dict(self) -> dict:
        return asdict(self)


def record_commission(sale: Sale, amount_cents: int, rule) -> Commission:
    """
    Append the ledger entry for an approved sale. Does not commit.
    """
    if sale.salesman_id is None:
        raise InvalidInputError("Owner sales do not earn commission", details={"sale_id": sale.id})
    if amount_cents < 0:
        raise InvalidInputError("Commission amount cannot be negative", details={"sale_id": sale.id})

    existing = db.session.query(Commission.id).filter_by(sale_id=sale.id).first()
    if existing is not None:
        raise AlreadyResolvedError(sale.id, SALE_APPROVED)

    commission = Commission(
        sale_id=sale.id,
        salesman_id=sale.salesman_id,
        shop_id=sale.shop_id,
        commission_rule_id=rule.id if rule is not None else None,
        amount_cents=amount_cents,
        is_paid=False,
    )
    db.session.add(commission)
    db.session.flush()
    current_app.logger.info(
        "Commission %s recorded for sale %s: %s cents (rule %s)",
        commission.id, sale.id, amount_cents, commission.commission_rule_id,
    )
    return commission


def get_commission(commission_id: int) -> Commission:
    commission = db.session.get(Commission, commission_id)
    if commission is None:
        raise NotFoundError("Commission", commission_id)
    return commission


def list_commissions(
    *,
    salesman_id: int | None = None,
    shop_id: int | None = None,
    is_paid: bool | None = None,
) -> list[Commission]:
    query = db.session.query(Commission)
    if salesman_id is not None:
        query = query.filter(Commission.salesman_id == salesman_id)
    if shop_id is not None:
        query = query.filter(Commission.shop_id == shop_id)
    if is_paid is not None:
        query = query.filter(Commission.is_paid.is_(is_paid))
    return query.order_by(Commission.created_at.desc(), Commission.id.desc()).all()


def mark_paid(commission_id: int) -> Commission:
    begin_write_transaction()
    try:
        commission = lock_for_update(db.session.query(Commission).filter_by(id=commission_id)).first()
        if commission is None:
            raise NotFoundError("Commission", commission_id)
        if commission.is_paid:
            raise AlreadyPaidError(commission_id)

        commission.is_paid = True
        commission.paid_at = utcnow()
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info("Commission %s marked paid", commission_id)
    return commission


def commissions_by_date_range(
    start: datetime,
    end: datetime,
    *,
    salesman_id: int | None = None,
    shop_id: int | None = None,
) -> dict:
    """Entries with start <= created_at <= end, plus their total."""
    if start is None or end is None:
        raise InvalidInputError("start and end are required")
    if end < start:
        raise InvalidInputError("end must not be before start")

    query = db.session.query(Commission).filter(
        Commission.created_at >= start,
        Commission.created_at <= end,
    )
    if salesman_id is not None:
        query = query.filter(Commission.salesman_id == salesman_id)
    if shop_id is not None:
        query = query.filter(Commission.shop_id == shop_id)

    commissions = query.order_by(Commission.created_at.asc(), Commission.id.asc()).all()
    return {
        "total_commission_cents": sum(c.amount_cents for c in commissions),
        "commissions": commissions,
    }


def projected_pending_cents(*, salesman_id: int | None = None, shop_id: int | None = None) -> tuple[int, int]:
    """
    (amount, count) of commission pending salesman sales would earn if
    approved now under each salesman's current active rule.
    """
    query = db.session.query(Sale).filter(
        Sale.status == SALE_PENDING,
        Sale.salesman_id.isnot(None),
    )
    if salesman_id is not None:
        query = query.filter(Sale.salesman_id == salesman_id)
    if shop_id is not None:
        query = query.filter(Sale.shop_id == shop_id)

    rules: dict[int, object] = {}
    total = 0
    count = 0
    for sale in query.all():
        if sale.salesman_id not in rules:
            rules[sale.salesman_id] = commission_rule_service.active_rule_for(sale.salesman_id)
        total += commission_for_sale(sale, rules[sale.salesman_id])
        count += 1
    return total, count


def summarize(*, salesman_id: int | None = None, shop_id: int | None = None) -> CommissionSummary:
    """
    Totals for one salesman or one shop.

    approved_total: recorded ledger entries (split into paid/unpaid)
    pending_total: projection for sales still pending, recomputed each call
    total: approved_total + pending_total
    """
    if (salesman_id is None) == (shop_id is None):
        raise InvalidInputError("Provide exactly one of salesman_id or shop_id")

    query = db.session.query(
        func.count(Commission.id),
        func.coalesce(func.sum(Commission.amount_cents), 0),
        func.coalesce(
            func.sum(case((Commission.is_paid.is_(True), Commission.amount_cents), else_=0)),
            0,
        ),
    )
    if salesman_id is not None:
        query = query.filter(Commission.salesman_id == salesman_id)
    else:
        query = query.filter(Commission.shop_id == shop_id)

    approved_count, approved_total, paid_total = query.one()
    approved_total = int(approved_total or 0)
    paid_total = int(paid_total or 0)

    pending_total, pending_count = projected_pending_cents(salesman_id=salesman_id, shop_id=shop_id)

    return CommissionSummary(
        total_cents=approved_total + pending_total,
        approved_total_cents=approved_total,
        pending_total_cents=pending_total,
        paid_total_cents=paid_total,
        unpaid_total_cents=approved_total - paid_total,
        approved_count=int(approved_count or 0),
        pending_count=pending_count,
    )
