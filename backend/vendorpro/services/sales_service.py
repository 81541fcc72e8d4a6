"""
Sale lifecycle: record a sale against inventory, hold it pending, resolve it.

    pending --approve--> approved   commission recorded, stock stays reserved
    pending --reject---> rejected   stock released, no commission

Each write (create/approve/reject) runs in one transaction opened by
begin_write_transaction() and committed once. Any business error rolls the
whole transaction back before it propagates, so a failed call leaves stock,
sales and commissions exactly as they were.
"""

from __future__ import annotations

from typing import Iterable

from flask import current_app

from ..extensions import db
from ..errors import (
    AlreadyResolvedError,
    InvalidInputError,
    NotFoundError,
    SalesEngineError,
)
from ..models import Product, Sale, SaleItem
from ..models.sales import (
    SALE_APPROVED,
    SALE_PENDING,
    SALE_REJECTED,
    SALE_STATUSES,
    OwnerDirect,
    SaleOrigin,
    SalesmanSale,
)
from ..time_utils import utcnow
from ..validation import MAX_PRICE_CENTS, MAX_QUANTITY, MAX_SALE_TOTAL_CENTS, SaleItemInput
from . import commission_rule_service, commission_service, directory_service, inventory_service
from .commission_calculator import commission_for_sale
from .concurrency import begin_write_transaction, lock_for_update


class SaleLifecycleManager:
    """
    The sale state machine.

    Collaborators are passed in rather than looked up, so tests can swap
    any of them:
    - inventory: reserve_items / release_items
    - rules: active_rule_for(salesman_id)
    - ledger: record_commission(sale, amount_cents, rule)
    """

    def __init__(self, inventory=inventory_service, rules=commission_rule_service, ledger=commission_service):
        self.inventory = inventory
        self.rules = rules
        self.ledger = ledger

    # ------------------------------------------------------------------
    # create
    # ------------------------------------------------------------------

    def create(self, shop_id: int, origin: SaleOrigin, items: Iterable[SaleItemInput]) -> Sale:
        items = list(items)
        begin_write_transaction()
        try:
            self._validate_request(shop_id, origin, items)

            sale = Sale(
                shop_id=shop_id,
                salesman_id=origin.salesman_id if isinstance(origin, SalesmanSale) else None,
                status=SALE_PENDING,
                total_amount_cents=sum(i.quantity * i.sold_at_cents for i in items),
            )
            for item in items:
                sale.items.append(SaleItem(
                    product_id=item.product_id,
                    quantity=item.quantity,
                    sold_at_cents=item.sold_at_cents,
                    line_total_cents=item.quantity * item.sold_at_cents,
                ))
            db.session.add(sale)
            db.session.flush()

            self.inventory.reserve_items(
                [inventory_service.StockLine(i.product_id, i.quantity) for i in items],
                shop_id=shop_id,
                sale_id=sale.id,
            )

            db.session.commit()
        except SalesEngineError as e:
            db.session.rollback()
            current_app.logger.info("Sale rejected at creation for shop %s: %s", shop_id, e)
            raise
        except Exception:
            db.session.rollback()
            raise

        current_app.logger.info(
            "Sale %s created for shop %s (%s items, total %s cents)",
            sale.id, shop_id, len(items), sale.total_amount_cents,
        )
        return sale

    def _validate_request(self, shop_id: int, origin: SaleOrigin, items: list[SaleItemInput]) -> None:
        directory_service.get_shop(shop_id)

        if isinstance(origin, SalesmanSale):
            salesman = directory_service.require_salesman_in_shop(origin.salesman_id, shop_id)
            if not salesman.is_active:
                raise InvalidInputError("Salesman is inactive", details={"salesman_id": origin.salesman_id})
        elif not isinstance(origin, OwnerDirect):
            raise InvalidInputError("Unknown sale origin")

        if not items:
            raise InvalidInputError("A sale needs at least one item")

        product_ids = {item.product_id for item in items}
        products = {
            p.id: p
            for p in db.session.query(Product).filter(Product.id.in_(product_ids)).all()
        }
        for index, item in enumerate(items):
            if item.quantity <= 0:
                raise InvalidInputError("quantity must be > 0", details={"index": index})
            if item.quantity > MAX_QUANTITY:
                raise InvalidInputError(f"quantity cannot exceed {MAX_QUANTITY}", details={"index": index})
            if item.sold_at_cents <= 0:
                raise InvalidInputError("sold_at_cents must be > 0", details={"index": index})
            if item.sold_at_cents > MAX_PRICE_CENTS:
                raise InvalidInputError(f"sold_at_cents cannot exceed {MAX_PRICE_CENTS}", details={"index": index})
            product = products.get(item.product_id)
            if product is None:
                raise InvalidInputError(
                    "Unknown product",
                    details={"index": index, "product_id": item.product_id},
                )
            if product.shop_id != shop_id:
                raise InvalidInputError(
                    "Product does not belong to shop",
                    details={"index": index, "product_id": item.product_id, "shop_id": shop_id},
                )

        total = sum(item.quantity * item.sold_at_cents for item in items)
        if total > MAX_SALE_TOTAL_CENTS:
            raise InvalidInputError("Sale total is too large", details={"total_amount_cents": total})

    # ------------------------------------------------------------------
    # resolve
    # ------------------------------------------------------------------

    def _lock_pending(self, sale_id: int) -> Sale:
        sale = lock_for_update(db.session.query(Sale).filter_by(id=sale_id)).first()
        if sale is None:
            raise NotFoundError("Sale", sale_id)
        if not sale.is_pending:
            raise AlreadyResolvedError(sale.id, sale.status)
        return sale

    def approve(self, sale_id: int) -> Sale:
        """
        pending -> approved.

        Salesman sales get exactly one Commission row, computed with the
        salesman's active rule and the products' current catalog prices.
        No active rule means a zero-amount row. Owner sales get none.
        Stock is not touched (it was reserved at creation).
        """
        begin_write_transaction()
        try:
            sale = self._lock_pending(sale_id)

            origin = sale.origin
            if isinstance(origin, SalesmanSale):
                rule = self.rules.active_rule_for(origin.salesman_id)
                amount_cents = commission_for_sale(sale, rule)
                self.ledger.record_commission(sale, amount_cents, rule)

            sale.status = SALE_APPROVED
            sale.resolved_at = utcnow()
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        current_app.logger.info("Sale %s approved", sale.id)
        return sale

    def reject(self, sale_id: int, reason: str | None = None) -> Sale:
        """pending -> rejected; every item's quantity goes back on the shelf."""
        reason = (reason or "").strip() or current_app.config.get(
            "DEFAULT_REJECTION_REASON", "No reason provided"
        )
        if len(reason) > 255:
            raise InvalidInputError("reason exceeds max length 255")

        begin_write_transaction()
        try:
            sale = self._lock_pending(sale_id)

            self.inventory.release_items(
                [inventory_service.StockLine(item.product_id, item.quantity) for item in sale.items],
                shop_id=sale.shop_id,
                sale_id=sale.id,
            )

            sale.status = SALE_REJECTED
            sale.rejection_reason = reason
            sale.resolved_at = utcnow()
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        current_app.logger.info("Sale %s rejected: %s", sale.id, reason)
        return sale

    def resolve(self, sale_id: int, decision: str, reason: str | None = None) -> Sale:
        if decision == "approve":
            return self.approve(sale_id)
        if decision == "reject":
            return self.reject(sale_id, reason)
        raise InvalidInputError("decision must be 'approve' or 'reject'", details={"decision": decision})


def get_manager() -> SaleLifecycleManager:
    """The manager wired up by create_app."""
    return current_app.extensions["sale_lifecycle"]


# ----------------------------------------------------------------------
# Read-only projections
# ----------------------------------------------------------------------

def get_sale(sale_id: int) -> Sale:
    sale = db.session.get(Sale, sale_id)
    if sale is None:
        raise NotFoundError("Sale", sale_id)
    return sale


def list_sales(
    *,
    shop_id: int | None = None,
    salesman_id: int | None = None,
    status: str | None = None,
) -> list[Sale]:
    """Sales matching every given filter, newest first."""
    if status is not None and status not in SALE_STATUSES:
        raise InvalidInputError(
            f"status must be one of {', '.join(SALE_STATUSES)}",
            details={"status": status},
        )

    query = db.session.query(Sale)
    if shop_id is not None:
        query = query.filter(Sale.shop_id == shop_id)
    if salesman_id is not None:
        query = query.filter(Sale.salesman_id == salesman_id)
    if status is not None:
        query = query.filter(Sale.status == status)
    return query.order_by(Sale.created_at.desc(), Sale.id.desc()).all()


def sales_by_shop(shop_id: int) -> list[Sale]:
    return list_sales(shop_id=shop_id)


def sales_by_salesman(salesman_id: int) -> list[Sale]:
    return list_sales(salesman_id=salesman_id)


def sales_by_status(status: str, shop_id: int | None = None) -> list[Sale]:
    return list_sales(shop_id=shop_id, status=status)
