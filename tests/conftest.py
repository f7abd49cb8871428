import itertools
import os

os.environ["APP_ENV"] = "development"
os.environ["DB_TYPE"] = "sqlite"
os.environ["SQLITE_URL"] = "sqlite+aiosqlite:///./inventrack_test.db"
os.environ.setdefault("JWT_ACCESS_SECRET_KEY", "test-secret-key")
os.environ["DISABLE_SCHEDULER"] = "true"

import pytest
from httpx import ASGITransport, AsyncClient

from app.core.db import AsyncSessionLocal, Base, engine
from app.core.security import create_access_token, hash_password
from app.models.users.user_models import USER_ROLES, User
from main import app

PASSWORD = "password123"
PASSWORD_HASH = hash_password(PASSWORD)


@pytest.fixture(autouse=True)
async def schema():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield
    await engine.dispose()


@pytest.fixture
async def db():
    async with AsyncSessionLocal() as session:
        yield session


@pytest.fixture
async def client():
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def users(db):
    created = {}
    for role in USER_ROLES:
        user = User(
            username=f"{role}@example.com",
            full_name=f"{role.title()} User",
            password_hash=PASSWORD_HASH,
            role=role,
            is_active=True,
            token_version=0,
            version=1,
        )
        db.add(user)
        created[role] = user
    await db.commit()
    return created


@pytest.fixture
def headers(users):
    def _headers(role: str = "admin", user: User | None = None) -> dict:
        target = user or users[role]
        token = create_access_token(subject=target.username, token_version=target.token_version)
        return {"Authorization": f"Bearer {token}"}

    return _headers


# ---------------------------------------------------------------------------
# API factories
# ---------------------------------------------------------------------------
_seq = itertools.count(1)


@pytest.fixture
def make_warehouse(client, headers):
    async def _make(**overrides) -> dict:
        n = next(_seq)
        payload = {
            "name": f"Warehouse {n}",
            "code": f"wh-{n}",
            "address": "1 Dock Road",
            "city": "Springfield",
            "state": "IL",
            "postal_code": "62701",
            "country": "US",
            **overrides,
        }
        resp = await client.post("/warehouses/", json=payload, headers=headers("admin"))
        assert resp.status_code == 201, resp.text
        return resp.json()["data"]

    return _make


@pytest.fixture
def make_product(client, headers):
    async def _make(**overrides) -> dict:
        n = next(_seq)
        payload = {
            "sku": f"SKU-{n}",
            "name": f"Product {n}",
            "price": "25.00",
            "cost_price": "10.00",
            "min_stock_level": 5,
            **overrides,
        }
        resp = await client.post("/products/", json=payload, headers=headers("admin"))
        assert resp.status_code == 201, resp.text
        return resp.json()["data"]

    return _make


@pytest.fixture
def make_inventory(client, headers):
    async def _make(product_id: int, warehouse_id: int, quantity: int = 0) -> dict:
        resp = await client.post(
            "/inventory/",
            json={"product_id": product_id, "warehouse_id": warehouse_id, "quantity_on_hand": quantity},
            headers=headers("inventory"),
        )
        assert resp.status_code == 201, resp.text
        return resp.json()["data"]

    return _make


@pytest.fixture
def make_supplier(client, headers):
    async def _make(**overrides) -> dict:
        n = next(_seq)
        payload = {
            "company_name": f"Supplier {n} Ltd",
            "email": f"supplier{n}@example.com",
            "address_line_1": "5 Mill Lane",
            "city": "Leeds",
            "country": "UK",
            **overrides,
        }
        resp = await client.post("/suppliers/", json=payload, headers=headers("purchasing"))
        assert resp.status_code == 201, resp.text
        return resp.json()["data"]

    return _make


@pytest.fixture
def make_customer(client, headers):
    async def _make(**overrides) -> dict:
        n = next(_seq)
        payload = {
            "company_name": f"Customer {n} Inc",
            "email": f"customer{n}@example.com",
            "billing_address_line_1": "9 High Street",
            "billing_city": "Boston",
            "billing_country": "US",
            **overrides,
        }
        resp = await client.post("/customers/", json=payload, headers=headers("sales"))
        assert resp.status_code == 201, resp.text
        return resp.json()["data"]

    return _make
