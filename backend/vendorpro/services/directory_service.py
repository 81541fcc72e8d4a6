# Overview: Shop/salesman directory lookups used to validate sales.

from __future__ import annotations

from ..extensions import db
from ..errors import InvalidInputError, NotFoundError
from ..models import Shop, Salesman


def create_shop(name: str, owner_name: str | None = None, address: str | None = None) -> Shop:
    name = (name or "").strip()
    if not name:
        raise InvalidInputError("name is required")
    shop = Shop(name=name, owner_name=owner_name, address=address)
    db.session.add(shop)
    db.session.commit()
    return shop


def get_shop(shop_id: int) -> Shop:
    shop = db.session.get(Shop, shop_id)
    if shop is None:
        raise NotFoundError("Shop", shop_id)
    return shop


def list_shops() -> list[Shop]:
    return db.session.query(Shop).order_by(Shop.id.asc()).all()


def create_salesman(shop_id: int, name: str, phone: str | None = None) -> Salesman:
    get_shop(shop_id)
    name = (name or "").strip()
    if not name:
        raise InvalidInputError("name is required")
    salesman = Salesman(shop_id=shop_id, name=name, phone=phone, is_active=True)
    db.session.add(salesman)
    db.session.commit()
    return salesman


def get_salesman(salesman_id: int) -> Salesman:
    salesman = db.session.get(Salesman, salesman_id)
    if salesman is None:
        raise NotFoundError("Salesman", salesman_id)
    return salesman


def list_salesmen(shop_id: int, include_inactive: bool = False) -> list[Salesman]:
    query = db.session.query(Salesman).filter_by(shop_id=shop_id)
    if not include_inactive:
        query = query.filter(Salesman.is_active.is_(True))
    return query.order_by(Salesman.id.asc()).all()


def require_salesman_in_shop(salesman_id: int, shop_id: int) -> Salesman:
    salesman = get_salesman(salesman_id)
    if salesman.shop_id != shop_id:
        raise InvalidInputError(
            "Salesman does not belong to shop",
            details={"salesman_id": salesman_id, "shop_id": shop_id},
        )
    return salesman
