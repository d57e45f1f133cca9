import itertools
import os
from decimal import Decimal

# The module-level engine is never used by the tests; keep it off PostgreSQL.
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from pharmacy import crud, schemas
from pharmacy.auth import create_access_token, get_password_hash
from pharmacy.database import get_db, init_db, make_engine
from pharmacy.main import app
from pharmacy.models import Customer, Product
from pharmacy.orders import OrderManager

PASSWORD = "Pharm@cy2024"


@pytest.fixture
def engine(tmp_path):
    eng = make_engine(f"sqlite:///{tmp_path / 'pharmacy.db'}")
    init_db(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def stock_of(session_factory):
    """Read a product's stock through a fresh session."""

    def _stock_of(product_id: int) -> int:
        with session_factory() as session:
            return session.get(Product, product_id).stock

    return _stock_of


@pytest.fixture
def make_product(db):
    counter = itertools.count(1)

    def _make(stock: int = 10, price: str = "5.00", name: str = None, category: str = "analgesics"):
        n = next(counter)
        product = Product(
            name=name or f"Product {n}",
            description="test product",
            price=Decimal(price),
            stock=stock,
            category=category,
            sku=f"SKU-{n:04d}",
        )
        db.add(product)
        db.commit()
        db.refresh(product)
        return product

    return _make


@pytest.fixture
def make_customer(db):
    counter = itertools.count(1)

    def _make(name: str = None):
        n = next(counter)
        customer = Customer(name=name or f"Customer {n}", email=f"customer{n}@example.com")
        db.add(customer)
        db.commit()
        db.refresh(customer)
        return customer

    return _make


@pytest.fixture
def customer(make_customer):
    return make_customer()


@pytest.fixture(params=["transaction", "compensate"])
def write_mode(request):
    return request.param


@pytest.fixture
def manager(db, write_mode):
    return OrderManager(db, write_mode=write_mode)


def order_in(customer_id, *items, payment_method="cash"):
    """Build an OrderCreate from (product_id, quantity[, price]) tuples."""
    return schemas.OrderCreate(
        customer_id=customer_id,
        items=[
            schemas.OrderItemCreate(
                product_id=item[0],
                quantity=item[1],
                price=Decimal(item[2]) if len(item) > 2 else None,
            )
            for item in items
        ],
        payment_method=payment_method,
    )


# -----------------------------
# HTTP layer
# -----------------------------

@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def _headers_for(user) -> dict:
    token = create_access_token(user_id=user.id, email=user.email, role=user.role)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_user(db):
    return crud.create_user(
        db, email="admin@example.com", name="Admin", hashed_password=get_password_hash(PASSWORD), role="admin"
    )


@pytest.fixture
def admin_headers(admin_user):
    return _headers_for(admin_user)


@pytest.fixture
def user_headers(db):
    user = crud.create_user(
        db, email="clerk@example.com", name="Clerk", hashed_password=get_password_hash(PASSWORD), role="user"
    )
    return _headers_for(user)
