"""
Shared test configuration.

Tests run against a throwaway SQLite file. DATABASE_URL has to be set before
anything imports database.py, so it is done at the top of this module.
"""

import os
import tempfile

_DB_DIR = tempfile.mkdtemp(prefix="ledger-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_DB_DIR, 'ledger.db')}"

from datetime import date
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from database import Base, SessionLocal, engine
from main import app
from crud.users import sync_user
from models.business_partners import BusinessPartner
from models.ledger_entries import EntityType, LedgerEntryType, PaymentStatus
from models.products import Product
from models.users import UserRole
from schemas.actor import ActorContext
from schemas.ledger_entries import LedgerEntryCreate, LedgerItemCreate
from utils.auth_utils import get_actor

COMPANY = "acme-traders"
TODAY = date(2026, 10, 19)

ADMIN = ActorContext(uid="admin-1", display_name="Asha Admin", role=UserRole.ADMIN, company_id=COMPANY)
MANAGER = ActorContext(uid="mgr-1", display_name="Manoj Manager", role=UserRole.STORE_MANAGER, company_id=COMPANY)
OTHER_MANAGER = ActorContext(uid="mgr-2", display_name="Meera Manager", role=UserRole.STORE_MANAGER, company_id=COMPANY)


@pytest.fixture(autouse=True)
def reset_database():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def actors(db):
    """Register the test users so admins can be found for notifications."""
    for actor in (ADMIN, MANAGER, OTHER_MANAGER):
        sync_user(db, actor)
    return {"admin": ADMIN, "manager": MANAGER, "other_manager": OTHER_MANAGER}


@pytest.fixture
def catalog(db):
    widget = Product(name="Widget", sku="W-1", numeric_price=Decimal("100.00"), stock=50,
                     unit_of_measure="pcs", company_id=COMPANY)
    gadget = Product(name="Gadget", sku="G-1", numeric_price=Decimal("250.00"), stock=5,
                     unit_of_measure="box", company_id=COMPANY)
    db.add_all([widget, gadget])
    db.commit()
    return {"widget": widget.id, "gadget": gadget.id}


@pytest.fixture
def partners(db):
    customer = BusinessPartner(name="Ravi Stores", phone="9876543210", is_customer=True, company_id=COMPANY)
    seller = BusinessPartner(name="Kumar Wholesale", phone="9123456780", is_seller=True, company_id=COMPANY)
    db.add_all([customer, seller])
    db.commit()
    return {"customer": customer.id, "seller": seller.id}


def stock_of(db, product_id):
    db.expire_all()
    return db.get(Product, product_id).stock


def sale(customer_id, items, payment_status=PaymentStatus.PAID, payment_method="Cash", **overrides):
    """Build a sale input; items are (product_id, quantity) pairs."""
    data = dict(
        date=TODAY,
        type=LedgerEntryType.SALE,
        entity_type=EntityType.CUSTOMER,
        entity_id=customer_id,
        items=[LedgerItemCreate(product_id=pid, quantity=qty) for pid, qty in items],
        payment_status=payment_status,
        payment_method=payment_method if payment_status != PaymentStatus.PENDING else None,
    )
    data.update(overrides)
    return LedgerEntryCreate(**data)


def purchase(seller_id, items, payment_status=PaymentStatus.PAID, payment_method="Bank Transfer", **overrides):
    data = dict(
        date=TODAY,
        type=LedgerEntryType.PURCHASE,
        entity_type=EntityType.SELLER,
        entity_id=seller_id,
        items=[LedgerItemCreate(product_id=pid, quantity=qty) for pid, qty in items],
        payment_status=payment_status,
        payment_method=payment_method if payment_status != PaymentStatus.PENDING else None,
    )
    data.update(overrides)
    return LedgerEntryCreate(**data)


@pytest.fixture
def current_actor():
    """Mutable holder for the actor the HTTP client authenticates as."""
    return {"actor": ADMIN}


@pytest.fixture
def client(current_actor, actors):
    app.dependency_overrides[get_actor] = lambda: current_actor["actor"]
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
