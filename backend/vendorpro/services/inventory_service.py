# Overview: Inventory ledger; the only code allowed to change Product.stock_quantity.

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from sqlalchemy import update

from ..extensions import db
from ..errors import InsufficientStockError, InvalidInputError, NotFoundError, SalesEngineError
from ..models import Product, InventoryMovement
"""
Inventory Ledger invariants (authoritative)

- stock_quantity never goes negative.
- reserve is a compare-and-decrement: a single conditional UPDATE
  (WHERE stock_quantity >= quantity). Zero rows matched means insufficient
  stock and nothing was written. Two callers racing for the last unit cannot
  both succeed.
- release is an unconditional increment and only ever reverses a prior
  reserve of the same quantity (called once per item of a rejected sale).
- Multi-item reservations are all-or-nothing: reserve_items releases what it
  already reserved before raising.
- Every change appends an InventoryMovement row in the same transaction.
- Nothing here commits; the caller owns the transaction boundary.
"""

MOVEMENT_OPENING = "OPENING"
MOVEMENT_RESERVE = "RESERVE"
MOVEMENT_RELEASE = "RELEASE"


@dataclass(frozen=True)
class StockLine:
    product_id: int
    quantity: int


def get_stock(product_id: int) -> int:
    stock = db.session.query(Product.stock_quantity).filter_by(id=product_id).scalar()
    if stock is None:
        raise NotFoundError("Product", product_id)
    return int(stock)


def record_opening_stock(product: Product) -> InventoryMovement:
    """Audit row for the quantity a product was created with."""
    movement = InventoryMovement(
        shop_id=product.shop_id,
        product_id=product.id,
        type=MOVEMENT_OPENING,
        quantity_delta=product.stock_quantity,
        note="Opening stock",
    )
    db.session.add(movement)
    return movement


def reserve_stock(
    product_id: int,
    quantity: int,
    *,
    shop_id: int,
    sale_id: int | None = None,
) -> None:
    """
    Atomically decrement stock if at least `quantity` units are available.

    Raises InsufficientStockError (no mutation) otherwise.
    """
    if quantity <= 0:
        raise InvalidInputError("quantity must be positive", details={"product_id": product_id})

    result = db.session.execute(
        update(Product)
        .where(Product.id == product_id, Product.stock_quantity >= quantity)
        .values(stock_quantity=Product.stock_quantity - quantity)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        available = db.session.query(Product.stock_quantity).filter_by(id=product_id).scalar()
        if available is None:
            raise NotFoundError("Product", product_id)
        raise InsufficientStockError(product_id, quantity, int(available))

    db.session.add(InventoryMovement(
        shop_id=shop_id,
        product_id=product_id,
        sale_id=sale_id,
        type=MOVEMENT_RESERVE,
        quantity_delta=-quantity,
        note=f"Reserved for sale {sale_id}" if sale_id else "Reserved",
    ))


def release_stock(
    product_id: int,
    quantity: int,
    *,
    shop_id: int,
    sale_id: int | None = None,
) -> None:
    """Unconditionally increment stock (reverses a prior reserve_stock)."""
    if quantity <= 0:
        raise InvalidInputError("quantity must be positive", details={"product_id": product_id})

    result = db.session.execute(
        update(Product)
        .where(Product.id == product_id)
        .values(stock_quantity=Product.stock_quantity + quantity)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise NotFoundError("Product", product_id)

    db.session.add(InventoryMovement(
        shop_id=shop_id,
        product_id=product_id,
        sale_id=sale_id,
        type=MOVEMENT_RELEASE,
        quantity_delta=quantity,
        note=f"Released from sale {sale_id}" if sale_id else "Released",
    ))


def reserve_items(lines: Iterable[StockLine], *, shop_id: int, sale_id: int | None = None) -> None:
    """
    Reserve every line or none of them.

    On the first failure, lines already reserved by this call are released
    and the original error is re-raised.
    """
    reserved: list[StockLine] = []
    try:
        for line in lines:
            reserve_stock(line.product_id, line.quantity, shop_id=shop_id, sale_id=sale_id)
            reserved.append(line)
    except SalesEngineError:
        for line in reversed(reserved):
            release_stock(line.product_id, line.quantity, shop_id=shop_id, sale_id=sale_id)
        raise


def release_items(lines: Iterable[StockLine], *, shop_id: int, sale_id: int | None = None) -> None:
    for line in lines:
        release_stock(line.product_id, line.quantity, shop_id=shop_id, sale_id=sale_id)


def list_movements(product_id: int) -> list[InventoryMovement]:
    return (
        db.session.query(InventoryMovement)
        .filter_by(product_id=product_id)
        .order_by(InventoryMovement.occurred_at.asc(), InventoryMovement.id.asc())
        .all()
    )
