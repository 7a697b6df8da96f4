"""Pytest fixtures for storefront tests."""

import os

os.environ.setdefault("DATABASE_URL_OVERRIDE", "sqlite://")
os.environ.setdefault("ENV", "test")

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

import storefront.models  # noqa: F401
from storefront.models.product import Product
from storefront.notifications import clear_handlers
from storefront.schemas.checkout_schemas import CartLine, ShippingAddressCreate
from storefront.services.checkout_service import place_order


@pytest.fixture
def engine():
    """In-memory SQLite shared by every session of one test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def products(session):
    """A small catalog: mug (id 7), kettle (id 8), and a retired teapot (id 9)."""
    catalog = [
        Product(id=7, name="Ceramic Mug", sku="MUG-7", price=Decimal("25.00"), stock_quantity=10),
        Product(id=8, name="Tea Kettle", sku="KET-8", price=Decimal("60.00"), stock_quantity=3),
        Product(id=9, name="Old Teapot", sku="POT-9", price=Decimal("15.00"), stock_quantity=5, is_active=False),
    ]
    for product in catalog:
        session.add(product)
    session.commit()
    return {p.id: p for p in catalog}


@pytest.fixture
def address():
    return ShippingAddressCreate(
        first_name="Ada",
        last_name="Byron",
        address_line="12 St James's Square",
        city="London",
        state="Greater London",
        country="UK",
        zip_code="SW1Y 4JH",
        phone_number="+44 20 7946 0000",
    )


@pytest.fixture
def make_order(session, products, address):
    """Place an order for customer 42; defaults to two mugs."""

    def _make_order(lines=None, customer_id=42, payment_method="credit card", notes=None):
        if lines is None:
            lines = [CartLine(product_id=7, quantity=2, unit_price=Decimal("25.00"))]
        return place_order(
            session,
            customer_id=customer_id,
            cart_items=lines,
            shipping_address=address,
            payment_method=payment_method,
            notes=notes,
        )

    return _make_order


@pytest.fixture(autouse=True)
def notification_handlers():
    yield
    clear_handlers()


@pytest.fixture
def client(session):
    """Test client whose requests share the test session."""
    from storefront.database import get_session
    from storefront.main import app

    def get_session_override():
        return session

    app.dependency_overrides[get_session] = get_session_override
    yield TestClient(app)
    app.dependency_overrides.clear()


