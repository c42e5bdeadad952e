"""Pytest fixtures for the storefront tests."""

import os

os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

from datetime import datetime, timezone

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from main import app
from services.auth_service.models import User
from services.auth_service.service import AuthService
from services.order_service.schemas import OrderCreate, OrderLineCreate, ShippingAddress
from services.product_service.schemas import ProductCategory, ProductCreate
from services.product_service.service import ProductService
from shared.config.database import Base, get_db
from shared.security import limiter

T0 = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

ADDRESS = {
    "street": "12 Cocoa Lane",
    "city": "Bruges",
    "state": "West Flanders",
    "zip_code": "8000",
    "country": "Belgium",
}


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def file_session_factory(tmp_path):
    """Sessions on separate connections to one SQLite file, so their transactions contend for real."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'storefront.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, expire_on_commit=False)
    await engine.dispose()


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_product(db):
    async def _make(name="Dark Truffle Box", price=10.0, stock_quantity=5, category=ProductCategory.TRUFFLES):
        return await ProductService.create_product(
            db,
            ProductCreate(name=name, price=price, stock_quantity=stock_quantity, category=category),
        )
    return _make


@pytest.fixture
def make_user(db):
    """Inserts a user directly; password hashing is covered by the auth API tests."""
    async def _make(email="ada@example.com", role="customer", name="Ada"):
        user = User(name=name, email=email, hashed_password="not-a-real-hash", role=role)
        db.add(user)
        await db.commit()
        await db.refresh(user)
        return user
    return _make


def order_request(*lines, payment_method="credit-card"):
    """OrderCreate for explicit (product_id, quantity) lines, or for the cart when none are given."""
    items = [OrderLineCreate(product_id=pid, quantity=qty) for pid, qty in lines] or None
    return OrderCreate(
        items=items,
        shipping_address=ShippingAddress(**ADDRESS),
        payment_method=payment_method,
    )


def auth_headers(user) -> dict:
    return {"Authorization": f"Bearer {AuthService.issue_token(user)}"}


@pytest_asyncio.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    limiter.enabled = False
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
    limiter.enabled = True
