"""
Pytest fixtures for the VendorPro sales engine tests.

Provides the app on an in-memory database, a per-test clean session,
a test client, and a small shop with salesmen, products and rules.
"""

from decimal import Decimal

import pytest

from vendorpro import create_app
from vendorpro.extensions import db
from vendorpro.models import (
    Shop,
    Salesman,
    Product,
    CommissionRule,
)
from vendorpro.models.commissions import (
    RULE_PERCENTAGE_OF_SALES,
    RULE_FIXED_AMOUNT,
    RULE_PERCENTAGE_ON_DIFFERENCE,
)
from vendorpro.services import commission_rule_service, inventory_service
from vendorpro.services.sales_service import SaleLifecycleManager
from vendorpro.validation import SaleItemInput


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'TRANSPORT_RETRY_ATTEMPTS': 1,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def manager(app):
    return app.extensions["sale_lifecycle"]


@pytest.fixture(scope='function')
def shop(db_session):
    shop = Shop(name="Main Street Mobiles", owner_name="Owner")
    db_session.add(shop)
    db_session.commit()
    return shop


@pytest.fixture(scope='function')
def other_shop(db_session):
    shop = Shop(name="Harbour Road Mobiles", owner_name="Other Owner")
    db_session.add(shop)
    db_session.commit()
    return shop


@pytest.fixture(scope='function')
def salesman(db_session, shop):
    salesman = Salesman(shop_id=shop.id, name="Asha", is_active=True)
    db_session.add(salesman)
    db_session.commit()
    return salesman


@pytest.fixture(scope='function')
def second_salesman(db_session, shop):
    salesman = Salesman(shop_id=shop.id, name="Ravi", is_active=True)
    db_session.add(salesman)
    db_session.commit()
    return salesman


def make_product(shop_id: int, name: str, *, stock: int, selling: int, base: int | None = None) -> Product:
    """Product with opening stock recorded the way products_service does it."""
    product = Product(
        shop_id=shop_id,
        name=name,
        base_price_cents=base if base is not None else selling // 2,
        selling_price_cents=selling,
        stock_quantity=stock,
    )
    db.session.add(product)
    db.session.flush()
    inventory_service.record_opening_stock(product)
    db.session.commit()
    return product


@pytest.fixture(scope='function')
def phone(db_session, shop):
    """Catalog price 100.00, 10 in stock."""
    return make_product(shop.id, "Phone", stock=10, selling=10000, base=7000)


@pytest.fixture(scope='function')
def charger(db_session, shop):
    """Catalog price 20.00, 3 in stock."""
    return make_product(shop.id, "Charger", stock=3, selling=2000, base=800)


@pytest.fixture(scope='function')
def foreign_product(db_session, other_shop):
    return make_product(other_shop.id, "Tablet", stock=5, selling=30000)


def make_rule(rule_type: str, value) -> CommissionRule:
    rule = CommissionRule(type=rule_type, value=Decimal(str(value)), is_active=True)
    db.session.add(rule)
    db.session.commit()
    return rule


@pytest.fixture(scope='function')
def ten_percent_rule(db_session):
    return make_rule(RULE_PERCENTAGE_OF_SALES, 10)


@pytest.fixture(scope='function')
def fixed_rule(db_session):
    return make_rule(RULE_FIXED_AMOUNT, 5)


@pytest.fixture(scope='function')
def difference_rule(db_session):
    return make_rule(RULE_PERCENTAGE_ON_DIFFERENCE, 20)


@pytest.fixture(scope='function')
def assigned_ten_percent(db_session, salesman, ten_percent_rule):
    commission_rule_service.assign_rule(salesman.id, ten_percent_rule.id)
    return ten_percent_rule


def item(product, quantity: int, sold_at_cents: int) -> SaleItemInput:
    return SaleItemInput(product_id=product.id, quantity=quantity, sold_at_cents=sold_at_cents)


def stock_of(product_id: int) -> int:
    return inventory_service.get_stock(product_id)
