from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


RULE_PERCENTAGE_OF_SALES = "PERCENTAGE_OF_SALES"
RULE_FIXED_AMOUNT = "FIXED_AMOUNT"
RULE_PERCENTAGE_ON_DIFFERENCE = "PERCENTAGE_ON_DIFFERENCE"

COMMISSION_RULE_TYPES = (
    RULE_PERCENTAGE_OF_SALES,
    RULE_FIXED_AMOUNT,
    RULE_PERCENTAGE_ON_DIFFERENCE,
)


class CommissionRule(db.Model):
    """
    Configured commission formula.

    VALUE UNITS:
    - PERCENTAGE_OF_SALES: percent of the sale total
    - FIXED_AMOUNT: currency units paid per unit sold
    - PERCENTAGE_ON_DIFFERENCE: percent of (sale total - catalog price total)

    Editing a rule never touches commissions already computed with it.
    """
    __tablename__ = "commission_rules"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    type = db.Column(db.String(32), nullable=False, index=True)
    value = db.Column(db.Numeric(12, 4), nullable=False)
    description = db.Column(db.String(255), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<CommissionRule id={self.id} type={self.type} value={self.value}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "value": float(self.value) if self.value is not None else None,
            "description": self.description,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class SalesmanCommissionRule(db.Model):
    """
    Salesman <-> rule assignment.

    At most one row per salesman has is_active = true (partial unique index).
    Replaced assignments are kept with is_active = false for history.
    """
    __tablename__ = "salesman_commission_rules"
    __table_args__ = (
        db.Index(
            "uq_salesman_commission_rules_active",
            "salesman_id",
            unique=True,
            sqlite_where=db.text("is_active = 1"),
            postgresql_where=db.text("is_active"),
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    salesman_id = db.Column(db.Integer, db.ForeignKey("salesmen.id"), nullable=False, index=True)
    commission_rule_id = db.Column(db.Integer, db.ForeignKey("commission_rules.id"), nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    assigned_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    unassigned_at = db.Column(db.DateTime(timezone=True), nullable=True)

    rule = db.relationship("CommissionRule")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "salesman_id": self.salesman_id,
            "commission_rule_id": self.commission_rule_id,
            "is_active": self.is_active,
            "assigned_at": to_utc_z(self.assigned_at),
            "unassigned_at": to_utc_z(self.unassigned_at) if self.unassigned_at else None,
        }


class Commission(db.Model):
    """
    Commission ledger entry, written once when a salesman sale is approved.

    IMMUTABLE: amount_cents, sale_id and commission_rule_id never change.
    Only is_paid/paid_at move, and only through mark_paid.
    commission_rule_id is NULL when the salesman had no active rule
    (zero-commission record).
    """
    __tablename__ = "commissions"
    __table_args__ = (
        db.UniqueConstraint("sale_id", name="uq_commissions_sale"),
        db.CheckConstraint("amount_cents >= 0", name="ck_commissions_amount_non_negative"),
        db.Index("ix_commissions_salesman_created", "salesman_id", "created_at"),
        db.Index("ix_commissions_shop_created", "shop_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False)
    salesman_id = db.Column(db.Integer, db.ForeignKey("salesmen.id"), nullable=False, index=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)
    commission_rule_id = db.Column(db.Integer, db.ForeignKey("commission_rules.id"), nullable=True)

    amount_cents = db.Column(db.Integer, nullable=False)

    is_paid = db.Column(db.Boolean, nullable=False, default=False, index=True)
    paid_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    sale = db.relationship("Sale", backref=db.backref("commission", uselist=False, lazy=True))
    rule = db.relationship("CommissionRule")
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "salesman_id": self.salesman_id,
            "shop_id": self.shop_id,
            "commission_rule_id": self.commission_rule_id,
            "amount_cents": self.amount_cents,
            "is_paid": self.is_paid,
            "paid_at": to_utc_z(self.paid_at) if self.paid_at else None,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }
