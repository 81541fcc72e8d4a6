from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


class Product(db.Model):
    """
    Product master data with its current stock level.

    STOCK INVARIANT:
    stock_quantity is only ever changed by services.inventory_service
    (reserve/release, plus the opening quantity at creation). It can never
    go negative: the conditional UPDATE in reserve_stock refuses, and the
    CHECK constraint backs it up at the database level.

    PRICES (cents):
    - base_price_cents: cost to the shop
    - selling_price_cents: catalog/list price. PERCENTAGE_ON_DIFFERENCE
      commissions are measured against this, not against the negotiated price.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("stock_quantity >= 0", name="ck_products_stock_non_negative"),
        db.Index("ix_products_shop_name", "shop_id", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    base_price_cents = db.Column(db.Integer, nullable=False)
    selling_price_cents = db.Column(db.Integer, nullable=False)
    stock_quantity = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    shop = db.relationship("Shop", backref=db.backref("products", lazy=True))

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} shop_id={self.shop_id} stock={self.stock_quantity}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shop_id": self.shop_id,
            "name": self.name,
            "base_price_cents": self.base_price_cents,
            "selling_price_cents": self.selling_price_cents,
            "stock_quantity": self.stock_quantity,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class InventoryMovement(db.Model):
    """
    Append-only audit trail of stock changes.

    TYPES:
    - OPENING: stock the product was created with
    - RESERVE: decrement at sale creation (negative delta)
    - RELEASE: restock on sale rejection (positive delta)

    For any product, opening + SUM(quantity_delta of RESERVE/RELEASE) equals
    the current stock_quantity.
    """
    __tablename__ = "inventory_movements"
    __table_args__ = (
        db.Index("ix_inventory_movements_product_occurred", "product_id", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=True, index=True)

    type = db.Column(db.String(16), nullable=False, index=True)
    quantity_delta = db.Column(db.Integer, nullable=False)
    note = db.Column(db.String(255), nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shop_id": self.shop_id,
            "product_id": self.product_id,
            "sale_id": self.sale_id,
            "type": self.type,
            "quantity_delta": self.quantity_delta,
            "note": self.note,
            "occurred_at": to_utc_z(self.occurred_at),
        }
