from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


SALE_PENDING = "pending"
SALE_APPROVED = "approved"
SALE_REJECTED = "rejected"

SALE_STATUSES = (SALE_PENDING, SALE_APPROVED, SALE_REJECTED)


@dataclass(frozen=True)
class OwnerDirect:
    """Sale recorded by the shop owner. Never earns commission."""


@dataclass(frozen=True)
class SalesmanSale:
    """Sale recorded by (or on behalf of) a salesman."""
    salesman_id: int


SaleOrigin = Union[OwnerDirect, SalesmanSale]


class Sale(db.Model):
    """
    Sale document.

    LIFECYCLE:
        pending --approve--> approved   (terminal, commission recorded)
        pending --reject---> rejected   (terminal, stock released)

    Stock is reserved once, at creation, whatever the eventual status.
    A rejection releases exactly what creation reserved.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_shop_status_created", "shop_id", "status", "created_at"),
        db.Index("ix_sales_salesman_status", "salesman_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)

    # NULL means an owner-direct sale (see origin)
    salesman_id = db.Column(db.Integer, db.ForeignKey("salesmen.id"), nullable=True, index=True)

    status = db.Column(db.String(16), nullable=False, default=SALE_PENDING, index=True)

    # SUM(quantity * sold_at_cents) over items, fixed at creation
    total_amount_cents = db.Column(db.Integer, nullable=False)

    rejection_reason = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    resolved_at = db.Column(db.DateTime(timezone=True), nullable=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    shop = db.relationship("Shop", backref=db.backref("sales", lazy=True))
    salesman = db.relationship("Salesman", backref=db.backref("sales", lazy=True))
    items = db.relationship(
        "SaleItem",
        back_populates="sale",
        lazy="selectin",
        order_by="SaleItem.id",
        cascade="all, delete-orphan",
    )
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def origin(self) -> SaleOrigin:
        if self.salesman_id is None:
            return OwnerDirect()
        return SalesmanSale(self.salesman_id)

    @property
    def is_pending(self) -> bool:
        return self.status == SALE_PENDING

    @property
    def total_quantity(self) -> int:
        return sum(item.quantity for item in self.items)

    def __repr__(self) -> str:
        return f"<Sale id={self.id} shop_id={self.shop_id} status={self.status!r}>"

    def to_dict(self, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "shop_id": self.shop_id,
            "salesman_id": self.salesman_id,
            "origin": "salesman" if self.salesman_id is not None else "owner",
            "status": self.status,
            "total_amount_cents": self.total_amount_cents,
            "rejection_reason": self.rejection_reason,
            "created_at": to_utc_z(self.created_at),
            "resolved_at": to_utc_z(self.resolved_at) if self.resolved_at else None,
            "version_id": self.version_id,
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class SaleItem(db.Model):
    """One product line on a sale. sold_at_cents is the unit price actually charged."""
    __tablename__ = "sale_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_sale_items_quantity_positive"),
        db.CheckConstraint("sold_at_cents > 0", name="ck_sale_items_sold_at_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    sold_at_cents = db.Column(db.Integer, nullable=False)
    line_total_cents = db.Column(db.Integer, nullable=False)

    sale = db.relationship("Sale", back_populates="items")
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "quantity": self.quantity,
            "sold_at_cents": self.sold_at_cents,
            "line_total_cents": self.line_total_cents,
        }
