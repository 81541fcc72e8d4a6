from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Shop(db.Model):
    """
    Shop: the root of the single organizational hierarchy.

    DESIGN:
    - Products belong to exactly one shop (shop_id FK)
    - Salesmen belong to exactly one shop
    - Sales and commissions are always scoped by shop_id
    """
    __tablename__ = "shops"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    owner_name = db.Column(db.String(255), nullable=True)
    address = db.Column(db.String(255), nullable=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Shop id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "owner_name": self.owner_name,
            "address": self.address,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Salesman(db.Model):
    """
    Salesman directory entry.

    Only consulted to validate shop membership when a sale is recorded and
    to resolve commission rule assignments.
    """
    __tablename__ = "salesmen"
    __table_args__ = (
        db.Index("ix_salesmen_shop_active", "shop_id", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(32), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )

    shop = db.relationship("Shop", backref=db.backref("salesmen", lazy=True))

    def __repr__(self) -> str:
        return f"<Salesman id={self.id} name={self.name!r} shop_id={self.shop_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shop_id": self.shop_id,
            "name": self.name,
            "phone": self.phone,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }
