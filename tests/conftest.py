import os

os.environ["DATABASE_URL"] = "sqlite://"

import pytest
from fastapi.testclient import TestClient

from storefront import config, rate_limit
from storefront.database import Base, SessionLocal, engine
from storefront.main import app
from storefront.models import Product, ProductVariant, User
from storefront.security import create_access_token, get_password_hash


@pytest.fixture(autouse=True)
def fresh_state(tmp_path, monkeypatch):
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    rate_limit.reset()
    monkeypatch.setattr(config, "STORAGE_DIR", str(tmp_path / "storage"))
    yield
    rate_limit.reset()


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_user(db):
    def _make_user(email="buyer@example.com", password="secret123", role="customer", name="Buyer"):
        user = User(email=email, name=name, password_hash=get_password_hash(password), role=role)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def auth_headers():
    def _auth_headers(user):
        return {"Authorization": f"Bearer {create_access_token(user)}"}

    return _auth_headers


@pytest.fixture
def admin_headers(make_user, auth_headers):
    return auth_headers(make_user(email="admin@example.com", role="admin", name="Admin"))


@pytest.fixture
def make_product(db):
    def _make_product(name="Brown Sugar Milk Tea", price=4.5, category="milk-tea", in_stock=True, variants=(), created_at=None):
        product = Product(name=name, price=price, category=category, in_stock=in_stock)
        if created_at is not None:
            product.created_at = created_at
        product.variants = [
            ProductVariant(size=size, stock=stock, price_adjustment=adjustment)
            for size, stock, adjustment in variants
        ]
        db.add(product)
        db.commit()
        db.refresh(product)
        return product

    return _make_product


def order_payload(items, **customer):
    info = {"name": "Lan Nguyen", "phone": "0901234567"}
    info.update(customer)
    return {"items": items, "customerInfo": info}
