# backend/vendorpro/services/products_service.py
"""
Product catalog.

Stock is set once, as the opening quantity at creation. After that only the
inventory ledger (sale reservation / rejection release) moves it, so the
patch applied by update_product never includes stock_quantity.
"""
from __future__ import annotations

from ..extensions import db
from ..errors import NotFoundError
from ..models import Product
from . import inventory_service
from .directory_service import get_shop

PRODUCT_MUTABLE_FIELDS = {"name", "base_price_cents", "selling_price_cents"}


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def list_products(
    shop_id: int,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    """
    Shop-scoped product listing with optional pagination.

    Returns:
        Dict with 'items', 'count', and pagination metadata if paginated.
    """
    get_shop(shop_id)

    base_query = (
        db.session.query(Product)
        .filter(Product.shop_id == shop_id)
        .order_by(Product.name.asc(), Product.id.asc())
    )

    if page is None:
        products = base_query.all()
        return {
            "items": [p.to_dict() for p in products],
            "count": len(products),
        }

    per_page = min(per_page or 20, 100)  # Default 20, max 100
    page = max(page, 1)

    total = base_query.count()
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1

    products = base_query.offset((page - 1) * per_page).limit(per_page).all()

    return {
        "items": [p.to_dict() for p in products],
        "count": len(products),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product", product_id)
    return product


def create_product(*, shop_id: int, patch: dict) -> Product:
    """Create a product from a validated patch; its stock_quantity is the opening stock."""
    get_shop(shop_id)

    product = Product(
        shop_id=shop_id,
        name=patch["name"],
        base_price_cents=patch["base_price_cents"],
        selling_price_cents=patch["selling_price_cents"],
        stock_quantity=patch.get("stock_quantity") or 0,
    )
    db.session.add(product)
    db.session.flush()
    inventory_service.record_opening_stock(product)
    db.session.commit()
    return product


def update_product(product_id: int, patch: dict) -> Product:
    product = get_product(product_id)
    apply_product_patch(product, patch)
    db.session.commit()
    return product
