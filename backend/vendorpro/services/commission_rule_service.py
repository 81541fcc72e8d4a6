# Overview: Commission rule catalog and the salesman -> active rule resolver.

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..errors import InvalidInputError, NotFoundError
from ..models import CommissionRule, SalesmanCommissionRule, Salesman
from ..models.commissions import COMMISSION_RULE_TYPES
from ..time_utils import utcnow
from ..validation import parse_rule_value
from .concurrency import begin_write_transaction, lock_for_update


def create_rule(
    rule_type: str,
    value,
    description: str | None = None,
    is_active: bool = True,
) -> CommissionRule:
    if rule_type not in COMMISSION_RULE_TYPES:
        raise InvalidInputError(
            f"type must be one of {', '.join(COMMISSION_RULE_TYPES)}",
            details={"type": rule_type},
        )

    rule = CommissionRule(
        type=rule_type,
        value=parse_rule_value(value),
        description=description,
        is_active=bool(is_active),
    )
    db.session.add(rule)
    db.session.commit()
    current_app.logger.info("Commission rule %s created (%s %s)", rule.id, rule.type, rule.value)
    return rule


def get_rule(rule_id: int) -> CommissionRule:
    rule = db.session.get(CommissionRule, rule_id)
    if rule is None:
        raise NotFoundError("CommissionRule", rule_id)
    return rule


def list_rules(active_only: bool = False) -> list[CommissionRule]:
    query = db.session.query(CommissionRule)
    if active_only:
        query = query.filter(CommissionRule.is_active.is_(True))
    return query.order_by(CommissionRule.id.asc()).all()


def update_rule(
    rule_id: int,
    *,
    value=None,
    description: str | None = None,
    is_active: bool | None = None,
) -> CommissionRule:
    """
    Edit a rule in place.

    Commissions already recorded keep their amount and commission_rule_id;
    pending-commission projections pick up the new value on the next read.
    """
    rule = get_rule(rule_id)
    if value is not None:
        rule.value = parse_rule_value(value)
    if description is not None:
        rule.description = description
    if is_active is not None:
        rule.is_active = bool(is_active)
    db.session.commit()
    return rule


def assign_rule(salesman_id: int, rule_id: int) -> SalesmanCommissionRule:
    """
    Make `rule_id` the salesman's active rule, replacing any prior assignment.
    """
    begin_write_transaction()
    try:
        salesman = db.session.get(Salesman, salesman_id)
        if salesman is None:
            raise NotFoundError("Salesman", salesman_id)
        rule = db.session.get(CommissionRule, rule_id)
        if rule is None:
            raise NotFoundError("CommissionRule", rule_id)

        now = utcnow()
        previous = lock_for_update(
            db.session.query(SalesmanCommissionRule).filter_by(salesman_id=salesman_id, is_active=True)
        ).all()
        for assignment in previous:
            assignment.is_active = False
            assignment.unassigned_at = now
        # Deactivations must hit the partial unique index before the insert
        db.session.flush()

        assignment = SalesmanCommissionRule(
            salesman_id=salesman_id,
            commission_rule_id=rule_id,
            is_active=True,
            assigned_at=now,
        )
        db.session.add(assignment)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info("Commission rule %s assigned to salesman %s", rule_id, salesman_id)
    return assignment


def active_rule_for(salesman_id: int) -> CommissionRule | None:
    """
    The rule currently assigned to the salesman, or None.

    None covers both "nothing assigned" and "assigned rule is deactivated";
    callers treat it as zero commission, not as an error.
    """
    return (
        db.session.query(CommissionRule)
        .join(SalesmanCommissionRule, SalesmanCommissionRule.commission_rule_id == CommissionRule.id)
        .filter(
            SalesmanCommissionRule.salesman_id == salesman_id,
            SalesmanCommissionRule.is_active.is_(True),
            CommissionRule.is_active.is_(True),
        )
        .first()
    )


def require_active_rule_for(salesman_id: int) -> CommissionRule:
    rule = active_rule_for(salesman_id)
    if rule is None:
        raise NotFoundError("CommissionRule", {"salesman_id": salesman_id})
    return rule
