"""Shared fixtures: throwaway SQLite database, auth header, fake HTTP session."""

import os
import tempfile
import uuid

# must be set before backoffice is imported
_DB_PATH = os.path.join(tempfile.gettempdir(), f"backoffice-test-{os.getpid()}.db")
os.environ["DATABASE_URL"] = f"sqlite:///{_DB_PATH}"
os.environ["AUTH_JWT_SECRET"] = "test-secret"
os.environ["ETSY_API_KEY"] = "test-key"
os.environ["ETSY_API_SECRET"] = "test-secret-key"
os.environ["ETSY_REDIRECT_URI"] = ""

import jwt
import pytest

from backoffice.db import Base, SessionLocal, engine
from backoffice import models
from backoffice.etsy_client import EtsyClient
from fakes import FakeSession


@pytest.fixture(autouse=True)
def fresh_tables():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db(fresh_tables):
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def user_id():
    return uuid.uuid4()


@pytest.fixture
def auth_headers(user_id):
    token = jwt.encode({"sub": str(user_id), "aud": "authenticated"}, "test-secret", algorithm="HS256")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def http():
    return FakeSession()


@pytest.fixture
def etsy(http):
    return EtsyClient(api_key="test-key", api_secret="test-secret-key", session=http)


@pytest.fixture
def candle_recipe(db, user_id):
    """Candle product: 2 oz wax @ $0.50 and 1 wick @ $0.10 per unit."""
    category = models.ProductCategory(user_id=user_id, name="Candles")
    db.add(category)
    db.flush()

    product = models.Product(user_id=user_id, category_id=category.id, name="Vanilla Candle")
    wax = models.Supply(user_id=user_id, name="Soy Wax", unit="oz", price=0.50)
    wick = models.Supply(user_id=user_id, name="Cotton Wick", unit="each", price=0.10)
    db.add_all([product, wax, wick])
    db.flush()

    db.add_all([
        models.ProductSupply(product_id=product.id, supply_id=wax.id, quantity=2, unit="oz"),
        models.ProductSupply(product_id=product.id, supply_id=wick.id, quantity=1, unit="each"),
    ])
    db.commit()
    return {"product": product, "wax": wax, "wick": wick, "category": category}
