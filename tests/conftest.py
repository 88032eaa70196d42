import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from typing import List

from soldout_listing.main import app
from soldout_listing.database import Base, get_db
from soldout_listing.models import Product
from soldout_listing.listing.context import ListingContext

# Create test database
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"
engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

def make_product(number: str, name: str, stock: int, is_closeout: bool, **kwargs) -> Product:
    """Helper function to create products with sensible defaults"""
    values = {
        "product_number": number,
        "name": name,
        "description": "Hand knit wool sweater",
        "price": 49.99,
        "category": "sweaters",
        "stock": stock,
        "is_closeout": is_closeout,
        "active": True,
    }
    values.update(kwargs)
    return Product(**values)

@pytest.fixture(scope="function")
def db():
    # Create test database tables
    Base.metadata.create_all(bind=engine)

    # Create test session
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)

@pytest.fixture(scope="function")
def client(db):
    # Override the get_db dependency
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()

@pytest.fixture(scope="function")
def listing_context(db):
    return ListingContext(db, request_id="test-request")

@pytest.fixture(scope="function")
def catalog(db) -> List[Product]:
    """
    Six available and five sold-out sweaters plus one inactive product.

    Sold-out names sort before the available ones, so a plain name sort
    would list them first.
    """
    products = [
        make_product("AV-001", "Zulu 01", stock=10, is_closeout=False),
        make_product("AV-002", "Zulu 02", stock=5, is_closeout=True),
        make_product("AV-003", "Zulu 03", stock=0, is_closeout=False),
        make_product("AV-004", "Zulu 04", stock=1, is_closeout=False),
        make_product("AV-005", "Zulu 05", stock=7, is_closeout=True),
        make_product("AV-006", "Zulu 06", stock=2, is_closeout=False),
        make_product("SO-001", "Alpha 01", stock=0, is_closeout=True),
        make_product("SO-002", "Alpha 02", stock=0, is_closeout=True),
        make_product("SO-003", "Alpha 03", stock=0, is_closeout=True),
        make_product("SO-004", "Alpha 04", stock=0, is_closeout=True),
        make_product("SO-005", "Alpha 05", stock=0, is_closeout=True),
        make_product("IN-001", "Alpha 00", stock=3, is_closeout=False, active=False),
    ]

    for product in products:
        db.add(product)
    db.commit()

    for product in products:
        db.refresh(product)

    return products
